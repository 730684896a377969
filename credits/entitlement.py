"""
Entitlement gate run in front of every paid operation.

The decision (`authorize`) is a pure function of the ledger and the clock.
`check_entitlement` loads the ledger and rejects the request up front;
`charge` settles the cost once the operation has produced its result.
"""
import logging
from dataclasses import dataclass
from datetime import datetime

from pymongo.errors import PyMongoError

from core.config import FREE_CREDITS_PER_WEEK
from core.errors import InsufficientCredits
from credits import service
from credits.service import FREE_CREDIT_WINDOW

logger = logging.getLogger(__name__)

NO_CREDITS_REASON = "no credits remaining"
NO_CREDITS_MESSAGE = (
    "No credits remaining. You have used your free weekly credit and have no "
    "paid credits. Please purchase more credits, subscribe, or add your own API key."
)


@dataclass(frozen=True)
class Authorization:
    allowed: bool
    uses_free_credit: bool = False
    unlimited: bool = False
    reason: str | None = None


@dataclass(frozen=True)
class Charge:
    charged: bool
    credits_used: int
    credits_remaining: int | str


def _iso(value):
    return value.isoformat() if isinstance(value, datetime) else value


def free_window_expired(ledger: dict, now: datetime) -> bool:
    last_reset = ledger.get("lastFreeCreditReset")
    if last_reset is None:
        return True
    return now - last_reset >= FREE_CREDIT_WINDOW


def free_credit_eligible(ledger: dict, now: datetime) -> bool:
    if free_window_expired(ledger, now):
        return True
    return ledger.get("freeCreditsUsed", 0) < FREE_CREDITS_PER_WEEK


def authorize(ledger: dict, operation_type: str, now: datetime | None = None) -> Authorization:
    now = now or datetime.utcnow()

    if ledger.get("customApiKey"):
        return Authorization(allowed=True, unlimited=True)

    if free_credit_eligible(ledger, now):
        return Authorization(allowed=True, uses_free_credit=True)

    if ledger.get("credits", 0) > 0:
        return Authorization(allowed=True)

    return Authorization(allowed=False, reason=NO_CREDITS_REASON)


def refresh_free_window(user_id: str, ledger: dict, now: datetime) -> dict:
    """Persist a weekly reset when due and return the ledger as it now reads."""
    if ledger.get("customApiKey") or not free_window_expired(ledger, now):
        return ledger

    service.reset_free_credits(user_id, now)
    return {**ledger, "freeCreditsUsed": 0, "lastFreeCreditReset": now}


def check_entitlement(user_id: str, operation_type: str, now: datetime | None = None):
    """
    Load the caller's ledger and make sure the operation may run.
    Returns (ledger, authorization); raises InsufficientCredits when denied.
    """
    now = now or datetime.utcnow()
    ledger = refresh_free_window(user_id, service.get_ledger(user_id, now), now)

    decision = authorize(ledger, operation_type, now)
    if not decision.allowed:
        logger.info(f"[Gate] {operation_type} denied for {user_id}: {decision.reason}")
        raise InsufficientCredits({
            "error": NO_CREDITS_MESSAGE,
            "reason": decision.reason,
            "creditsRemaining": 0,
            "freeCreditsUsed": ledger.get("freeCreditsUsed", 0),
            "freeCreditsRemaining": max(0, FREE_CREDITS_PER_WEEK - ledger.get("freeCreditsUsed", 0)),
            "lastFreeCreditReset": _iso(ledger.get("lastFreeCreditReset")),
        })

    return ledger, decision


def _settle(user_id: str, operation_type: str, balance: int, decision: Authorization, now: datetime) -> Charge:
    if decision.unlimited:
        service.log_usage(user_id, operation_type, now)
        return Charge(charged=True, credits_used=0, credits_remaining="unlimited")

    if decision.uses_free_credit and service.consume_free(user_id, operation_type, now):
        return Charge(charged=True, credits_used=0, credits_remaining=balance)

    if service.debit_paid(user_id, operation_type, now):
        return Charge(charged=True, credits_used=1, credits_remaining=max(balance - 1, 0))

    logger.warning(f"[Gate] Could not debit {user_id} for completed {operation_type}")
    return Charge(charged=False, credits_used=0, credits_remaining=balance)


def charge(
    user_id: str,
    operation_type: str,
    ledger: dict,
    decision: Authorization,
    now: datetime | None = None,
) -> Charge:
    """
    Settle the cost of a completed operation.

    Never raises for an unpaid operation: the caller already holds the result,
    so a debit that cannot be applied, or a ledger write that fails, is logged
    and reported as `charged=False`.
    """
    now = now or datetime.utcnow()
    balance = ledger.get("credits", 0)

    try:
        return _settle(user_id, operation_type, balance, decision, now)
    except PyMongoError:
        logger.exception(f"[Gate] Ledger write failed settling {operation_type} for {user_id}")
        remaining = "unlimited" if decision.unlimited else balance
        return Charge(charged=False, credits_used=0, credits_remaining=remaining)
