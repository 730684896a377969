from unittest.mock import patch

from pymongo.errors import ServerSelectionTimeoutError


def test_wake(anonymous_client):
    assert anonymous_client.get("/health/wake").json()["status"] == "awake"


def test_ready_when_mongo_answers(anonymous_client):
    with patch("health.router.client") as mongo:
        mongo.admin.command.return_value = {"ok": 1}
        body = anonymous_client.get("/health/ready").json()

    assert body["ready"] is True
    mongo.admin.command.assert_called_once_with("ping")


def test_not_ready_when_mongo_is_down(anonymous_client):
    with patch("health.router.client") as mongo:
        mongo.admin.command.side_effect = ServerSelectionTimeoutError("no servers")
        body = anonymous_client.get("/health/ready").json()

    assert body == {"ready": False, "mongo": False, "timestamp": body["timestamp"]}
