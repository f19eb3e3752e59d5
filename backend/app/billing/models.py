"""Domain models for the payment and settlement flows."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..entitlements.models import Currency, PlanKey, SubscriptionStatus


class TransactionStatus(str, Enum):
    """Status recorded on a ledger row."""

    SUCCESS = "success"


class PaymentState(str, Enum):
    """Progress of a single payment attempt through verification."""

    PENDING = "pending"
    VERIFIED = "verified"
    SETTLED = "settled"


class BillingAuditEventType(str, Enum):
    """Audit event categories emitted by the billing subsystem."""

    ORDER_CREATED = "order_created"
    PAYMENT_SETTLED = "payment_settled"
    PAYMENT_REJECTED = "payment_rejected"
    SETTLEMENT_CONFLICT = "settlement_conflict"


class AuthenticatedUser(BaseModel):
    """Per-request identity resolved from the bearer credential."""

    id: str
    email: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class GatewayOrder(BaseModel):
    """Order as reported by the payment gateway."""

    id: str
    amount: int = Field(ge=0, description="Amount in minor currency units")
    currency: str
    receipt: Optional[str] = None
    status: Optional[str] = None
    notes: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()

    @field_validator("notes", mode="before")
    @classmethod
    def _stringify_notes(cls, value: object) -> Dict[str, str]:
        # The gateway returns an empty list instead of an object when no notes were set.
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items()}
        return {}


class OrderHandle(BaseModel):
    """Opaque order parameters handed back to the checkout UI."""

    id: str
    amount: int
    currency: str

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_gateway(cls, order: GatewayOrder) -> "OrderHandle":
        return cls(id=order.id, amount=order.amount, currency=order.currency)


class VerificationRequest(BaseModel):
    """Payment confirmation submitted by the client after checkout."""

    payment_id: Optional[str] = None
    order_id: Optional[str] = None
    signature: Optional[str] = None
    plan_id: Optional[str] = None
    mode: Optional[str] = None
    currency: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("payment_id", "order_id", "signature", "plan_id", "mode", "currency")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None

    @property
    def is_complete(self) -> bool:
        return bool(self.payment_id and self.order_id and self.signature)

    @property
    def has_plan_selector(self) -> bool:
        return bool(self.plan_id or self.mode)


class PaymentTransaction(BaseModel):
    """Append-only ledger row written once per settled payment."""

    user_id: str
    payment_id: str
    order_id: str
    plan_id: PlanKey
    amount: Decimal
    currency: Currency
    status: TransactionStatus = TransactionStatus.SUCCESS
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)


class SettlementResult(BaseModel):
    """Outcome of a successful verification and settlement."""

    balance: int
    subscription_expiry: Optional[datetime] = None
    transaction: PaymentTransaction
    state: PaymentState = PaymentState.SETTLED

    model_config = ConfigDict(frozen=True)


class BillingStatus(BaseModel):
    """Read-only snapshot of a user's entitlements."""

    credits: int
    subscription_expiry: Optional[datetime] = None
    is_subscribed: bool = False
    status: SubscriptionStatus
    transactions: List[PaymentTransaction] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class BillingAuditEvent(BaseModel):
    """Structured audit event for operators."""

    event_type: BillingAuditEventType
    user_id: Optional[str] = None
    order_id: Optional[str] = None
    payment_id: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)
