from fastapi import APIRouter, Depends
from pydantic import BaseModel

from core.config import TRANSFORM_RATE_LIMIT
from core.errors import InvalidRequest
from core.rate_limiter import per_user_limit
from credits.entitlement import check_entitlement, charge
from transform import service
from transform.prompts import DEFAULT_MODE

router = APIRouter(prefix="/api", tags=["Transform"])


class HumanizeRequest(BaseModel):
    text: str | None = None
    advancedMode: bool = False
    writingMode: str = DEFAULT_MODE
    styleSample: str | None = None


class CritiqueRequest(BaseModel):
    text: str | None = None


def _require_text(text: str | None) -> str:
    if not text or not text.strip():
        raise InvalidRequest("Text is required")
    return text


@router.post("/humanize")
def humanize_text(
    payload: HumanizeRequest,
    user=Depends(per_user_limit("humanize", TRANSFORM_RATE_LIMIT)),
):
    text = _require_text(payload.text)
    ledger, decision = check_entitlement(user["uid"], "humanize")

    result = service.humanize(
        text,
        writing_mode=payload.writingMode,
        advanced_mode=payload.advancedMode,
        style_sample=payload.styleSample,
        api_key=ledger.get("customApiKey"),
    )

    billed = charge(user["uid"], "humanize", ledger, decision)

    return {
        "originalText": text,
        **result,
        "advancedMode": payload.advancedMode,
        "creditsRemaining": billed.credits_remaining,
        "creditCharged": billed.charged,
    }


@router.post("/critique")
def critique_text(
    payload: CritiqueRequest,
    user=Depends(per_user_limit("critique", TRANSFORM_RATE_LIMIT)),
):
    text = _require_text(payload.text)
    ledger, decision = check_entitlement(user["uid"], "critique")

    result = service.critique(text, api_key=ledger.get("customApiKey"))

    billed = charge(user["uid"], "critique", ledger, decision)

    return {
        **result,
        "creditsRemaining": billed.credits_remaining,
        "creditCharged": billed.charged,
    }
