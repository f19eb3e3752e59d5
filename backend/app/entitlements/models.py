"""Domain models for plans, accounts and entitlement computation."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PlanKey(str, Enum):
    """Canonical identifiers for purchasable plans."""

    PRO_MONTHLY = "pro_monthly"
    PRO_MONTHLY_USD = "pro_monthly_usd"
    CREDIT_TOPUP_100 = "credit_topup_100"
    CREDIT_TOPUP_GLOBAL = "credit_topup_global"


class PlanKind(str, Enum):
    """How a plan is billed."""

    SUBSCRIPTION = "subscription"
    ONE_TIME = "one_time"


class Currency(str, Enum):
    """Currencies the payment gateway is configured for."""

    INR = "INR"
    USD = "USD"


class PurchaseMode(str, Enum):
    """Plan selection modes offered by the pricing screen."""

    SUBSCRIPTION = "subscription"
    CREDITS = "credits"


class SubscriptionStatus(str, Enum):
    """Derived subscription state shown to end users."""

    FREE = "free"
    PRO = "pro"
    EXPIRED = "expired"


class Account(BaseModel):
    """Entitlement state held for a single user in the ``profiles`` table."""

    user_id: str
    credits: int = Field(default=0, ge=0)
    subscription_expiry: Optional[datetime] = None
    is_subscribed: bool = False

    model_config = ConfigDict(frozen=True)

    @field_validator("subscription_expiry")
    @classmethod
    def _ensure_timezone(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    def subscription_status(self, now: datetime) -> SubscriptionStatus:
        if self.subscription_expiry is None:
            return SubscriptionStatus.FREE
        if self.subscription_expiry > now:
            return SubscriptionStatus.PRO
        return SubscriptionStatus.EXPIRED
