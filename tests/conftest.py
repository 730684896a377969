"""
Shared fixtures. Configuration is pinned before the app is imported so no
test talks to Redis, Stripe, Gemini or the identity provider.
"""
import hashlib
import hmac
import json
import os
import time

os.environ["RATE_LIMIT_ENABLED"] = "0"
os.environ["ENABLE_TEST_ENDPOINTS"] = "1"
os.environ["FIREBASE_PROJECT_ID"] = "test-project"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["GENAI_API_KEY"] = "test-genai-key"

import pytest
from fastapi.testclient import TestClient

from core.dependencies import get_current_user
from main import app

TEST_USER = {"uid": "user-1", "email": "writer@example.com", "name": "Writer"}
WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]


@pytest.fixture
def client():
    app.dependency_overrides[get_current_user] = lambda: TEST_USER
    yield TestClient(app)
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture
def anonymous_client():
    return TestClient(app)


def sign_webhook(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header for `payload`."""
    timestamp = timestamp or int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.{payload}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def webhook_event(event_type: str, obj: dict, event_id: str = "evt_test_1") -> str:
    return json.dumps({"id": event_id, "type": event_type, "data": {"object": obj}})
