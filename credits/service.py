import logging
from datetime import datetime, timedelta

from pymongo import ReturnDocument

from core.config import FREE_CREDITS_PER_WEEK, FREE_CREDIT_WINDOW_DAYS
from credits.model import Subscription, UsageEntry, UserCredits
from mongo import credits_collection

logger = logging.getLogger(__name__)

FREE_CREDIT_WINDOW = timedelta(days=FREE_CREDIT_WINDOW_DAYS)

PAID_CREDIT_COST = 1


def _usage_entry(operation_type: str, credits_used: int, now: datetime) -> dict:
    return UsageEntry(date=now, creditsUsed=credits_used, type=operation_type).model_dump()


def new_ledger(user_id: str, now: datetime) -> dict:
    ledger = UserCredits(
        userId=user_id,
        lastFreeCreditReset=now,
        createdAt=now,
    ).model_dump(exclude={"customApiKey", "subscription"})
    return ledger


def get_ledger(user_id: str, now: datetime | None = None) -> dict:
    """
    Return the user's ledger, creating it with zeroed counters on first access.
    """
    now = now or datetime.utcnow()
    defaults = new_ledger(user_id, now)

    return credits_collection.find_one_and_update(
        {"_id": user_id},
        {"$setOnInsert": defaults},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )


def reset_free_credits(user_id: str, now: datetime | None = None) -> bool:
    """
    Start a new free-credit window. Only applies when the previous window has
    actually run out, so concurrent resets collapse into one.
    """
    now = now or datetime.utcnow()
    result = credits_collection.update_one(
        {"_id": user_id, "lastFreeCreditReset": {"$lte": now - FREE_CREDIT_WINDOW}},
        {"$set": {"lastFreeCreditReset": now, "freeCreditsUsed": 0}},
    )
    if result.modified_count:
        logger.info(f"[Credits] Free credit window reset for {user_id}")
    return result.modified_count == 1


def debit_paid(user_id: str, operation_type: str, now: datetime | None = None) -> bool:
    """
    Atomically take one paid credit. The balance check lives in the update
    filter, so a ledger with no credits is never touched.
    """
    now = now or datetime.utcnow()
    result = credits_collection.update_one(
        {"_id": user_id, "credits": {"$gte": PAID_CREDIT_COST}},
        {
            "$inc": {"credits": -PAID_CREDIT_COST},
            "$push": {"usageHistory": _usage_entry(operation_type, PAID_CREDIT_COST, now)},
        },
    )
    return result.modified_count == 1


def consume_free(user_id: str, operation_type: str, now: datetime | None = None) -> bool:
    now = now or datetime.utcnow()
    result = credits_collection.update_one(
        {"_id": user_id, "freeCreditsUsed": {"$lt": FREE_CREDITS_PER_WEEK}},
        {
            "$inc": {"freeCreditsUsed": 1},
            "$push": {"usageHistory": _usage_entry(operation_type, 0, now)},
        },
    )
    return result.modified_count == 1


def log_usage(user_id: str, operation_type: str, now: datetime | None = None):
    """Record a zero-cost use (custom key holders)."""
    now = now or datetime.utcnow()
    credits_collection.update_one(
        {"_id": user_id},
        {"$push": {"usageHistory": _usage_entry(operation_type, 0, now)}},
    )


def add_credits(user_id: str, amount: int):
    now = datetime.utcnow()
    defaults = new_ledger(user_id, now)
    defaults.pop("credits")

    credits_collection.update_one(
        {"_id": user_id},
        {
            "$inc": {"credits": amount},
            "$setOnInsert": defaults,
        },
        upsert=True,
    )
    logger.info(f"[Credits] Added {amount} credits for {user_id}")


def set_custom_api_key(user_id: str, api_key: str | None):
    if api_key:
        update = {"$set": {"customApiKey": api_key}}
    else:
        update = {"$unset": {"customApiKey": ""}}

    get_ledger(user_id)
    credits_collection.update_one({"_id": user_id}, update)


def set_subscription(user_id: str, subscription: Subscription):
    get_ledger(user_id)
    credits_collection.update_one(
        {"_id": user_id},
        {"$set": {"subscription": subscription.model_dump()}},
    )


def set_subscription_status(user_id: str, status: str):
    credits_collection.update_one(
        {"_id": user_id},
        {"$set": {"subscription.status": status}},
    )


def set_subscription_status_by_customer(customer_ref: str, status: str) -> list:
    """Update every ledger attached to a provider customer; returns their ids."""
    user_ids = [
        doc["_id"]
        for doc in credits_collection.find(
            {"subscription.customerRef": customer_ref}, {"_id": 1}
        )
    ]
    if user_ids:
        credits_collection.update_many(
            {"_id": {"$in": user_ids}},
            {"$set": {"subscription.status": status}},
        )
    return user_ids
