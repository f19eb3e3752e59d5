"""API schemas for billing endpoints."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..billing import BillingStatus, OrderHandle, PaymentTransaction, SettlementResult, VerificationRequest
from ..entitlements.models import SubscriptionStatus

ACTION_CREATE_ORDER = "create_order"
ACTION_VERIFY_PAYMENT = "verify_payment"


class PaymentActionRequest(BaseModel):
    """Body of ``POST /payment``; fields used depend on ``action``."""

    action: str = ""
    plan: Optional[str] = None
    mode: Optional[str] = None
    currency: Optional[str] = None
    payment_id: Optional[str] = None
    order_id: Optional[str] = None
    signature: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def normalized_action(self) -> str:
        return self.action.strip().replace(" ", "_").lower()

    def to_verification_request(self) -> VerificationRequest:
        return VerificationRequest(
            payment_id=self.payment_id,
            order_id=self.order_id,
            signature=self.signature,
            plan_id=self.plan,
            mode=self.mode,
            currency=self.currency,
        )


class CreateOrderResponse(BaseModel):
    id: str
    amount: int
    currency: str

    @classmethod
    def from_handle(cls, handle: OrderHandle) -> "CreateOrderResponse":
        return cls(id=handle.id, amount=handle.amount, currency=handle.currency)


class VerifyPaymentResponse(BaseModel):
    success: bool = True
    balance: int
    subscription_expiry: Optional[datetime] = Field(alias="subscriptionExpiry", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_settlement(cls, result: SettlementResult) -> "VerifyPaymentResponse":
        return cls(balance=result.balance, subscription_expiry=result.subscription_expiry)


class TransactionOut(BaseModel):
    payment_id: str = Field(alias="paymentId")
    order_id: str = Field(alias="orderId")
    plan_id: str = Field(alias="planId")
    amount: Decimal
    currency: str
    status: str
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_transaction(cls, transaction: PaymentTransaction) -> "TransactionOut":
        return cls(
            payment_id=transaction.payment_id,
            order_id=transaction.order_id,
            plan_id=transaction.plan_id.value,
            amount=transaction.amount,
            currency=transaction.currency.value,
            status=transaction.status.value,
            created_at=transaction.created_at,
        )


class BillingStatusResponse(BaseModel):
    credits: int
    subscription_expiry: Optional[datetime] = Field(alias="subscriptionExpiry", default=None)
    is_subscribed: bool = Field(alias="isSubscribed")
    status: SubscriptionStatus
    transactions: List[TransactionOut] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_status(cls, billing_status: BillingStatus) -> "BillingStatusResponse":
        return cls(
            credits=billing_status.credits,
            subscription_expiry=billing_status.subscription_expiry,
            is_subscribed=billing_status.is_subscribed,
            status=billing_status.status,
            transactions=[TransactionOut.from_transaction(tx) for tx in billing_status.transactions],
        )
