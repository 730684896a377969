import logging
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from core.config import APP_URL, CHECKOUT_RATE_LIMIT
from core.dependencies import get_current_user
from core.errors import Forbidden, InvalidRequest
from core.rate_limiter import per_user_limit
from credits.service import get_ledger, set_subscription_status
from payments import catalog, stripe_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Payments"])


class CheckoutRequest(BaseModel):
    priceId: str | None = None
    mode: Literal["payment", "subscription"] | None = None
    planId: str | None = None


class CancelSubscriptionRequest(BaseModel):
    subscriptionId: str | None = None


class ModifySubscriptionRequest(BaseModel):
    subscriptionId: str | None = None
    newPlanId: str | None = None
    newPriceId: str | None = None


@router.get("/payments/catalog")
def get_catalog():
    return catalog.as_json()


def _owned_subscription(user_id: str, subscription_id: str) -> dict:
    """The caller's subscription record, provided it is the one they named."""
    subscription = get_ledger(user_id).get("subscription") or {}
    if subscription.get("subscriptionRef") != subscription_id:
        logger.warning(f"[Payments] {user_id} tried to act on subscription {subscription_id}")
        raise Forbidden("Subscription does not belong to this account")
    return subscription


@router.post("/stripe/create-checkout-session")
def create_checkout_session(
    payload: CheckoutRequest,
    user=Depends(per_user_limit("checkout", CHECKOUT_RATE_LIMIT)),
):
    if not payload.priceId or not payload.mode or not payload.planId:
        raise InvalidRequest("Missing required parameters")

    # the webhook grants by planId, so the price charged must be that plan's
    if catalog.price_for(payload.mode, payload.planId) != payload.priceId:
        raise InvalidRequest("Price does not match plan")

    ledger = get_ledger(user["uid"])
    customer_id = (ledger.get("subscription") or {}).get("customerRef")

    if not customer_id:
        customer_id = stripe_client.create_customer(user.get("email"), user.get("name"))

    checkout_url = stripe_client.create_checkout_session(
        customer_id,
        payload.priceId,
        payload.mode,
        success_url=f"{APP_URL}/payment/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{APP_URL}/payment/cancel",
        metadata={
            "userId": user["uid"],
            "planId": payload.planId,
            "userEmail": user.get("email") or "",
        },
    )

    logger.info(f"[Payments] Checkout session created for {user['uid']} ({payload.mode}/{payload.planId})")
    return {"checkoutUrl": checkout_url}


@router.post("/subscription/cancel")
def cancel_subscription(
    payload: CancelSubscriptionRequest,
    user=Depends(get_current_user),
):
    if not payload.subscriptionId:
        raise InvalidRequest("Subscription ID is required")

    _owned_subscription(user["uid"], payload.subscriptionId)

    stripe_client.cancel_subscription(payload.subscriptionId)
    set_subscription_status(user["uid"], "canceled")

    return {
        "message": "Subscription canceled successfully",
        "canceledAt": datetime.utcnow().isoformat(),
    }


@router.post("/subscription/modify")
def modify_subscription(
    payload: ModifySubscriptionRequest,
    user=Depends(get_current_user),
):
    if not payload.subscriptionId or not payload.newPlanId or not payload.newPriceId:
        raise InvalidRequest("Subscription ID, new plan ID, and new price ID are required")

    new_plan = catalog.SUBSCRIPTION_PLANS.get(payload.newPlanId)
    if not new_plan:
        raise InvalidRequest("Invalid plan ID")

    if new_plan["stripePriceId"] != payload.newPriceId:
        raise InvalidRequest("Price does not match plan")

    _owned_subscription(user["uid"], payload.subscriptionId)

    updated = stripe_client.change_subscription_price(payload.subscriptionId, payload.newPriceId)

    logger.info(f"[Payments] {user['uid']} moved subscription {payload.subscriptionId} to {payload.newPlanId}")
    return {
        "message": "Subscription updated successfully",
        "subscription": updated,
        "newPlan": {**new_plan, "features": list(new_plan["features"])},
    }
