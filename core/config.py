import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


ALLOWED_ORIGIN = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")
APP_URL = os.getenv("APP_URL", "http://localhost:3000").rstrip("/")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID", "")

GENAI_API_KEY = os.getenv("GENAI_API_KEY")
GENAI_MODEL = os.getenv("GENAI_MODEL", "gemini-2.5-flash")

STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
RATE_LIMIT_ENABLED = _flag("RATE_LIMIT_ENABLED", "1")
TRANSFORM_RATE_LIMIT = int(os.getenv("TRANSFORM_RATE_LIMIT", "30"))
CHECKOUT_RATE_LIMIT = int(os.getenv("CHECKOUT_RATE_LIMIT", "20"))

ENABLE_TEST_ENDPOINTS = _flag("ENABLE_TEST_ENDPOINTS", "0")

FREE_CREDITS_PER_WEEK = 1
FREE_CREDIT_WINDOW_DAYS = 7
USAGE_HISTORY_PREVIEW = 10
