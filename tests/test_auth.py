import time
from unittest.mock import MagicMock, patch

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import HTTPException
from jose import jwt

from core import rate_limiter, security
from core.errors import Unauthenticated

PROJECT = "test-project"


@pytest.fixture(scope="module")
def signing_key():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


def make_token(private_pem, kid="kid-1", **claims):
    now = int(time.time())
    payload = {
        "iss": f"https://securetoken.google.com/{PROJECT}",
        "aud": PROJECT,
        "sub": "user-1",
        "email": "writer@example.com",
        "iat": now,
        "exp": now + 600,
    }
    payload.update(claims)
    return jwt.encode(payload, private_pem, algorithm="RS256", headers={"kid": kid})


@pytest.fixture
def certs(signing_key):
    with patch("core.security.get_signing_certs", return_value={"kid-1": signing_key[1]}) as mocked:
        yield mocked


def test_valid_token_yields_identity(signing_key, certs):
    identity = security.verify_id_token(make_token(signing_key[0], name="Writer"))
    assert identity == {"uid": "user-1", "email": "writer@example.com", "name": "Writer"}


def test_expired_token_is_rejected(signing_key, certs):
    token = make_token(signing_key[0], exp=int(time.time()) - 60)
    with pytest.raises(Unauthenticated):
        security.verify_id_token(token)


def test_wrong_audience_is_rejected(signing_key, certs):
    token = make_token(signing_key[0], aud="someone-else")
    with pytest.raises(Unauthenticated):
        security.verify_id_token(token)


def test_unknown_kid_refetches_then_rejects(signing_key, certs):
    with pytest.raises(Unauthenticated):
        security.verify_id_token(make_token(signing_key[0], kid="rotated"))
    certs.assert_called_with(force=True)


def test_garbage_token_is_rejected(certs):
    with pytest.raises(Unauthenticated):
        security.verify_id_token("not-a-jwt")


def test_bearer_token_reaches_route(anonymous_client, signing_key, certs):
    token = make_token(signing_key[0])
    with patch("credits.service.credits_collection") as collection:
        collection.find_one_and_update.return_value = {"_id": "user-1", "credits": 3, "freeCreditsUsed": 0}
        resp = anonymous_client.get("/api/user/credits", headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 200
    assert resp.json()["credits"] == 3


def test_missing_bearer_is_401(anonymous_client):
    resp = anonymous_client.get("/api/user/credits")
    assert resp.status_code == 401


def test_certs_are_cached_by_max_age():
    response = MagicMock()
    response.json.return_value = {"kid-1": "cert"}
    response.headers = {"Cache-Control": "public, max-age=19000, must-revalidate"}

    security._cert_cache.update({"certs": {}, "expires_at": 0.0})
    with patch("core.security.requests.get", return_value=response) as get:
        assert security.get_signing_certs() == {"kid-1": "cert"}
        assert security.get_signing_certs() == {"kid-1": "cert"}

    assert get.call_count == 1
    assert security._cert_cache["expires_at"] > time.time() + 18000
    security._cert_cache.update({"certs": {}, "expires_at": 0.0})


def test_rate_limit_blocks_after_limit():
    redis_client = MagicMock()
    redis_client.incr.return_value = 31
    with patch("core.rate_limiter.redis_client", redis_client):
        with pytest.raises(HTTPException) as exc:
            rate_limiter.rate_limit("humanize:user-1", 30, 3600)

    assert exc.value.status_code == 429
    redis_client.incr.assert_called_once_with("rl:humanize:user-1")


def test_rate_limit_starts_window_on_first_hit():
    redis_client = MagicMock()
    redis_client.incr.return_value = 1
    with patch("core.rate_limiter.redis_client", redis_client), \
            patch("core.rate_limiter.RATE_LIMIT_ENABLED", True):
        dependency = rate_limiter.per_user_limit("critique", 5, window_seconds=60)
        assert dependency(user={"uid": "user-1"}) == {"uid": "user-1"}

    redis_client.expire.assert_called_once_with("rl:critique:user-1", 60)
