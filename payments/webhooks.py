"""
Stripe webhook handling.

Events are verified against the webhook secret, then applied to the credit
ledger:
- checkout.session.completed (payment)      -> package credits
- checkout.session.completed (subscription) -> subscription record + first month's credits
- customer.subscription.deleted             -> subscription marked canceled
- customer.subscription.updated, invoice.*  -> acknowledged only

Deliveries are not deduplicated; a replayed checkout grants credits again.
"""
import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, Request

from credits.model import Subscription
from credits.service import add_credits, set_subscription, set_subscription_status_by_customer
from payments import catalog, stripe_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stripe", tags=["Webhooks"])


def _timestamp(value) -> datetime | None:
    return datetime.utcfromtimestamp(value) if value else None


def _subscription_period(subscription: dict) -> tuple:
    """Billing period bounds; newer API versions keep them on the items."""
    start = subscription.get("current_period_start")
    end = subscription.get("current_period_end")
    if start is None or end is None:
        items = subscription.get("items", {}).get("data", [])
        if items:
            start = items[0].get("current_period_start")
            end = items[0].get("current_period_end")
    return _timestamp(start), _timestamp(end)


def handle_checkout_completed(session: dict):
    metadata = session.get("metadata") or {}
    user_id = metadata.get("userId")
    plan_id = metadata.get("planId")

    if not user_id or not plan_id:
        logger.error(f"[Webhook] Checkout session {session.get('id')} is missing metadata")
        return

    mode = session.get("mode")

    if mode == "payment":
        credits = catalog.package_credits(plan_id)
        if credits > 0:
            add_credits(user_id, credits)
        else:
            logger.error(f"[Webhook] Unknown credit package '{plan_id}' for {user_id}")

    elif mode == "subscription" and session.get("subscription"):
        plan = catalog.SUBSCRIPTION_PLANS.get(plan_id)
        if not plan:
            logger.error(f"[Webhook] Unknown subscription plan '{plan_id}' for {user_id}")
            return

        subscription = stripe_client.retrieve_subscription(session["subscription"])
        period_start, period_end = _subscription_period(subscription)

        set_subscription(user_id, Subscription(
            customerRef=session.get("customer"),
            subscriptionRef=subscription["id"],
            status="active",
            plan=plan_id,
            creditsPerMonth=plan["creditsPerMonth"],
            periodStart=period_start,
            periodEnd=period_end,
        ))
        add_credits(user_id, plan["creditsPerMonth"])
        logger.info(f"[Webhook] {plan_id} subscription started for {user_id}")


def handle_subscription_deleted(subscription: dict):
    customer_id = subscription.get("customer")
    if not customer_id:
        logger.error(f"[Webhook] Subscription {subscription.get('id')} has no customer")
        return

    for user_id in set_subscription_status_by_customer(customer_id, "canceled"):
        logger.info(f"[Webhook] Subscription canceled for user: {user_id}")


def handle_subscription_updated(subscription: dict):
    logger.info(f"[Webhook] Subscription updated: {subscription.get('id')}")


def handle_invoice_payment_succeeded(invoice: dict):
    logger.info(f"[Webhook] Invoice payment succeeded: {invoice.get('id')}")


def handle_invoice_payment_failed(invoice: dict):
    logger.info(f"[Webhook] Invoice payment failed: {invoice.get('id')}")


EVENT_HANDLERS = {
    "checkout.session.completed": handle_checkout_completed,
    "customer.subscription.updated": handle_subscription_updated,
    "customer.subscription.deleted": handle_subscription_deleted,
    "invoice.payment_succeeded": handle_invoice_payment_succeeded,
    "invoice.payment_failed": handle_invoice_payment_failed,
}


def handle_event(event: dict):
    event_type = event.get("type")
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.debug(f"[Webhook] Ignoring event type: {event_type}")
        return

    handler(event.get("data", {}).get("object") or {})


@router.post("/webhook")
async def stripe_webhook(request: Request):
    payload = await request.body()
    event = stripe_client.construct_webhook_event(payload, request.headers.get("stripe-signature"))

    logger.info(f"[Webhook] {event.get('type')} ({event.get('id')})")

    try:
        handle_event(event)
    except Exception as e:
        logger.exception(f"[Webhook] Handler failed for {event.get('id')}: {e}")
        raise HTTPException(status_code=500, detail="Webhook handler failed")

    return {"received": True}
