from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


OperationType = Literal["humanize", "critique"]
SubscriptionStatus = Literal["active", "canceled", "past_due", "unpaid"]
PlanId = Literal["basic", "premium"]


class UsageEntry(BaseModel):
    date: datetime
    creditsUsed: int
    type: OperationType


class Subscription(BaseModel):
    customerRef: str
    subscriptionRef: str
    status: SubscriptionStatus = "active"
    plan: PlanId
    creditsPerMonth: int
    periodStart: Optional[datetime] = None
    periodEnd: Optional[datetime] = None


class UserCredits(BaseModel):
    """One ledger document per user; `_id` is the user id."""

    userId: str
    credits: int = 0
    freeCreditsUsed: int = 0
    lastFreeCreditReset: datetime
    customApiKey: Optional[str] = None
    subscription: Optional[Subscription] = None
    usageHistory: List[UsageEntry] = Field(default_factory=list)
    createdAt: Optional[datetime] = None
