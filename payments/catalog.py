import os
from types import MappingProxyType

CREDIT_PACKAGES = MappingProxyType({
    "starter": MappingProxyType({
        "id": "starter",
        "name": "Starter Pack",
        "credits": 10,
        "price": 5,
        "stripePriceId": os.getenv("STRIPE_PRICE_STARTER", "price_1S7mWUCglJSxh88XhuTNUx9c"),
    }),
    "popular": MappingProxyType({
        "id": "popular",
        "name": "Popular Pack",
        "credits": 50,
        "price": 20,
        "stripePriceId": os.getenv("STRIPE_PRICE_POPULAR", "price_1S7mWVCglJSxh88XvPcwyszU"),
        "popular": True,
    }),
    "pro": MappingProxyType({
        "id": "pro",
        "name": "Pro Pack",
        "credits": 150,
        "price": 50,
        "stripePriceId": os.getenv("STRIPE_PRICE_PRO", "price_1S7mWVCglJSxh88XUellrVN7"),
    }),
})

SUBSCRIPTION_PLANS = MappingProxyType({
    "basic": MappingProxyType({
        "id": "basic",
        "name": "Basic Plan",
        "creditsPerMonth": 100,
        "price": 15,
        "stripePriceId": os.getenv("STRIPE_PRICE_BASIC", "price_1S7mWWCglJSxh88XiFtK6TtE"),
        "features": ("100 credits per month", "All writing modes", "Basic support"),
    }),
    "premium": MappingProxyType({
        "id": "premium",
        "name": "Premium Plan",
        "creditsPerMonth": 500,
        "price": 45,
        "stripePriceId": os.getenv("STRIPE_PRICE_PREMIUM", "price_1S7mWWCglJSxh88X8p2oULb1"),
        "features": (
            "500 credits per month",
            "All writing modes",
            "Priority support",
            "Advanced features",
        ),
        "popular": True,
    }),
})


def package_credits(plan_id: str) -> int:
    """Credits granted by a one-time package; 0 for unknown ids."""
    package = CREDIT_PACKAGES.get(plan_id)
    return package["credits"] if package else 0


def as_json() -> dict:
    return {
        "creditPackages": [dict(p) for p in CREDIT_PACKAGES.values()],
        "subscriptionPlans": [
            {**p, "features": list(p["features"])} for p in SUBSCRIPTION_PLANS.values()
        ],
    }


def price_for(mode: str, plan_id: str) -> str | None:
    """Stripe price id the catalog sells `plan_id` at under checkout `mode`."""
    table = CREDIT_PACKAGES if mode == "payment" else SUBSCRIPTION_PLANS
    entry = table.get(plan_id)
    return entry["stripePriceId"] if entry else None
