from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from core.errors import UpstreamFailure


def fresh_ledger(**overrides):
    doc = {
        "_id": "user-1",
        "userId": "user-1",
        "credits": 0,
        "freeCreditsUsed": 0,
        "lastFreeCreditReset": datetime.utcnow(),
        "usageHistory": [],
    }
    doc.update(overrides)
    return doc


HUMANIZED = {"humanizedText": "Plain words.", "writingMode": "academic", "styleMatched": False}


@pytest.fixture
def ledger_store():
    with patch("credits.service.credits_collection") as collection:
        collection.update_one.return_value = MagicMock(modified_count=1)
        yield collection


def test_requires_authentication(anonymous_client):
    resp = anonymous_client.post("/api/humanize", json={"text": "hello"})
    assert resp.status_code == 401


def test_missing_text_is_rejected(client):
    resp = client.post("/api/humanize", json={"writingMode": "casual"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Text is required"


def test_malformed_body_is_a_400(client):
    resp = client.post("/api/humanize", json={"text": "hi", "advancedMode": "sometimes"})
    assert resp.status_code == 400


def test_free_credit_then_payment_required(client, ledger_store):
    ledger_store.find_one_and_update.side_effect = [
        fresh_ledger(),
        fresh_ledger(freeCreditsUsed=1),
    ]

    with patch("transform.service.humanize", return_value=HUMANIZED) as humanize:
        first = client.post("/api/humanize", json={"text": "Robotic words."})
        second = client.post("/api/humanize", json={"text": "More robotic words."})

    assert first.status_code == 200
    body = first.json()
    assert body["humanizedText"] == "Plain words."
    assert body["originalText"] == "Robotic words."
    assert body["creditCharged"] is True
    assert body["creditsRemaining"] == 0

    query, update = ledger_store.update_one.call_args.args
    assert query == {"_id": "user-1", "freeCreditsUsed": {"$lt": 1}}
    assert update["$inc"] == {"freeCreditsUsed": 1}

    assert second.status_code == 402
    assert second.json()["detail"]["reason"] == "no credits remaining"
    assert humanize.call_count == 1


def test_custom_key_is_unlimited_and_logged_at_zero_cost(client, ledger_store):
    ledger_store.find_one_and_update.return_value = fresh_ledger(customApiKey="user-key", freeCreditsUsed=1)

    with patch("transform.service.critique", return_value={"overallScore": 8, "feedback": [{"type": "strength"}]}) as critique:
        for _ in range(3):
            resp = client.post("/api/critique", json={"text": "An essay."})
            assert resp.status_code == 200
            assert resp.json()["creditsRemaining"] == "unlimited"

    critique.assert_called_with("An essay.", api_key="user-key")
    pushes = [call.args[1]["$push"]["usageHistory"] for call in ledger_store.update_one.call_args_list]
    assert len(pushes) == 3
    assert all(entry["creditsUsed"] == 0 and entry["type"] == "critique" for entry in pushes)
    assert all("$inc" not in call.args[1] for call in ledger_store.update_one.call_args_list)


def test_paid_credit_is_debited_after_success(client, ledger_store):
    ledger_store.find_one_and_update.return_value = fresh_ledger(credits=5, freeCreditsUsed=1)

    with patch("transform.service.humanize", return_value=HUMANIZED) as humanize:
        resp = client.post(
            "/api/humanize",
            json={"text": "Text", "writingMode": "casual", "advancedMode": True, "styleSample": "mine"},
        )

    assert resp.status_code == 200
    assert resp.json()["creditsRemaining"] == 4
    humanize.assert_called_once_with(
        "Text", writing_mode="casual", advanced_mode=True, style_sample="mine", api_key=None
    )
    query, update = ledger_store.update_one.call_args.args
    assert query == {"_id": "user-1", "credits": {"$gte": 1}}
    assert update["$push"]["usageHistory"]["creditsUsed"] == 1


def test_model_failure_is_not_charged(client, ledger_store):
    ledger_store.find_one_and_update.return_value = fresh_ledger(credits=5, freeCreditsUsed=1)

    with patch("transform.service.humanize", side_effect=UpstreamFailure()):
        resp = client.post("/api/humanize", json={"text": "Text"})

    assert resp.status_code == 500
    assert resp.json()["detail"] == "Upstream service failed"
    ledger_store.update_one.assert_not_called()


def test_result_returned_when_debit_loses_race(client, ledger_store):
    ledger_store.find_one_and_update.return_value = fresh_ledger(credits=1, freeCreditsUsed=1)
    ledger_store.update_one.return_value = MagicMock(modified_count=0)

    with patch("transform.service.humanize", return_value=HUMANIZED):
        resp = client.post("/api/humanize", json={"text": "Text"})

    assert resp.status_code == 200
    assert resp.json()["humanizedText"] == "Plain words."
    assert resp.json()["creditCharged"] is False


def test_database_errors_are_generic(client):
    from pymongo.errors import ServerSelectionTimeoutError

    with patch("credits.service.credits_collection") as collection:
        collection.find_one_and_update.side_effect = ServerSelectionTimeoutError("mongo down at 10.0.0.5")
        resp = client.post("/api/humanize", json={"text": "Text"})

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal server error"}


def test_result_returned_when_ledger_write_fails_after_model_ran(client, ledger_store):
    from pymongo.errors import AutoReconnect

    ledger_store.find_one_and_update.return_value = fresh_ledger(credits=5, freeCreditsUsed=1)
    ledger_store.update_one.side_effect = AutoReconnect("primary stepped down")

    with patch("transform.service.humanize", return_value=HUMANIZED):
        resp = client.post("/api/humanize", json={"text": "Text"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["humanizedText"] == "Plain words."
    assert body["creditCharged"] is False
    assert body["creditsRemaining"] == 5
