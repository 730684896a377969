import logging

import stripe

from core.config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from core.errors import UpstreamFailure, WebhookSignatureInvalid

logger = logging.getLogger(__name__)

stripe.api_key = STRIPE_SECRET_KEY


def _require_key():
    if not stripe.api_key:
        logger.error("[Stripe] STRIPE_SECRET_KEY is not set")
        raise UpstreamFailure("Payments are not configured")


def create_customer(email: str | None, name: str | None) -> str:
    _require_key()
    try:
        customer = stripe.Customer.create(email=email, name=name or "User")
    except stripe.StripeError as e:
        logger.error(f"[Stripe] Customer creation failed: {e}")
        raise UpstreamFailure("Failed to create checkout session")
    return customer.id


def create_checkout_session(
    customer_id: str,
    price_id: str,
    mode: str,
    success_url: str,
    cancel_url: str,
    metadata: dict,
) -> str:
    _require_key()
    try:
        session = stripe.checkout.Session.create(
            customer=customer_id,
            payment_method_types=["card"],
            line_items=[{"price": price_id, "quantity": 1}],
            mode=mode,
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
        )
    except stripe.StripeError as e:
        logger.error(f"[Stripe] Checkout session failed: {e}")
        raise UpstreamFailure("Failed to create checkout session")
    return session.url


def retrieve_subscription(subscription_id: str) -> dict:
    _require_key()
    try:
        subscription = stripe.Subscription.retrieve(subscription_id)
    except stripe.StripeError as e:
        logger.error(f"[Stripe] Could not retrieve subscription {subscription_id}: {e}")
        raise UpstreamFailure()
    return subscription.to_dict()


def cancel_subscription(subscription_id: str):
    _require_key()
    try:
        stripe.Subscription.cancel(subscription_id)
    except stripe.StripeError as e:
        logger.error(f"[Stripe] Could not cancel subscription {subscription_id}: {e}")
        raise UpstreamFailure("Failed to cancel subscription")


def change_subscription_price(subscription_id: str, price_id: str) -> dict:
    """Swap the subscription's first item to a new price, invoicing the proration."""
    subscription = retrieve_subscription(subscription_id)
    items = subscription.get("items", {}).get("data", [])
    if not items:
        logger.error(f"[Stripe] Subscription {subscription_id} has no items")
        raise UpstreamFailure("Failed to modify subscription")

    try:
        updated = stripe.Subscription.modify(
            subscription_id,
            items=[{"id": items[0]["id"], "price": price_id}],
            proration_behavior="always_invoice",
        )
    except stripe.StripeError as e:
        logger.error(f"[Stripe] Could not modify subscription {subscription_id}: {e}")
        raise UpstreamFailure("Failed to modify subscription")
    return updated.to_dict()


def construct_webhook_event(payload: bytes, signature: str | None) -> dict:
    """Verify `signature` over `payload` and return the parsed event."""
    if not signature or not STRIPE_WEBHOOK_SECRET:
        raise WebhookSignatureInvalid()

    try:
        event = stripe.Webhook.construct_event(payload, signature, STRIPE_WEBHOOK_SECRET)
    except ValueError as e:
        logger.error(f"[Stripe] Webhook payload could not be parsed: {e}")
        raise WebhookSignatureInvalid("Invalid payload")
    except stripe.SignatureVerificationError as e:
        logger.error(f"[Stripe] Webhook signature verification failed: {e}")
        raise WebhookSignatureInvalid()
    return event.to_dict()
