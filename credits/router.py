from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from core.config import FREE_CREDITS_PER_WEEK, USAGE_HISTORY_PREVIEW
from core.dependencies import get_current_user
from core.errors import InvalidRequest
from credits.entitlement import free_credit_eligible, refresh_free_window
from credits.service import add_credits, get_ledger, set_custom_api_key
from transform.service import validate_api_key

router = APIRouter(prefix="/api/user", tags=["Credits"])
test_router = APIRouter(prefix="/api/test", tags=["Testing"])


class ApiKeyRequest(BaseModel):
    apiKey: str | None = None


class AddCreditsRequest(BaseModel):
    credits: int | None = None


@router.get("/credits")
def get_credit_summary(current_user=Depends(get_current_user)):
    now = datetime.utcnow()
    user_id = current_user["uid"]
    ledger = refresh_free_window(user_id, get_ledger(user_id, now), now)

    eligible = free_credit_eligible(ledger, now)

    return {
        "credits": ledger.get("credits", 0),
        "freeCreditsUsed": ledger.get("freeCreditsUsed", 0),
        "freeCreditsRemaining": max(0, FREE_CREDITS_PER_WEEK - ledger.get("freeCreditsUsed", 0)) if eligible else 0,
        "lastFreeCreditReset": ledger.get("lastFreeCreditReset"),
        "customApiKey": bool(ledger.get("customApiKey")),
        "subscription": ledger.get("subscription"),
        "usageHistory": ledger.get("usageHistory", [])[-USAGE_HISTORY_PREVIEW:],
    }


@router.post("/api-key")
def update_api_key(payload: ApiKeyRequest, current_user=Depends(get_current_user)):
    api_key = (payload.apiKey or "").strip()
    if not api_key:
        raise InvalidRequest("API key is required")

    if not validate_api_key(api_key):
        raise InvalidRequest("Invalid API key. Please check your key and try again.")

    set_custom_api_key(current_user["uid"], api_key)
    return {
        "success": True,
        "message": "API key updated successfully. You now have unlimited usage!",
    }


@router.delete("/api-key")
def remove_api_key(current_user=Depends(get_current_user)):
    set_custom_api_key(current_user["uid"], None)
    return {
        "success": True,
        "message": "Custom API key removed. You will now use credits.",
    }


@test_router.post("/add-credits")
def add_test_credits(payload: AddCreditsRequest, current_user=Depends(get_current_user)):
    if not payload.credits or payload.credits <= 0:
        raise InvalidRequest("Invalid credits amount")

    add_credits(current_user["uid"], payload.credits)
    return {
        "success": True,
        "message": f"Added {payload.credits} credits successfully",
        "creditsAdded": payload.credits,
    }
