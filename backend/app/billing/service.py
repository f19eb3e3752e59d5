"""Core service exchanging verified payments for credits and subscription time."""
from __future__ import annotations

import logging
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional, Protocol, Sequence

from ..entitlements import (
    DEFAULT_SUBSCRIPTION_PERIOD_DAYS,
    Account,
    PlanDefinition,
    UnknownPlanError,
    apply_plan,
    get_plan_definition,
    resolve_plan,
)
from .exceptions import (
    BillingError,
    ConcurrencyConflict,
    DuplicatePayment,
    GatewayConfigurationError,
    IncompleteVerificationData,
    InvalidPlan,
    InvalidSignature,
    OrderCreationFailed,
    OrderLookupFailed,
    PlanMismatch,
    ProfileNotFound,
)
from .gateway import GatewayRequestError
from .models import (
    AuthenticatedUser,
    BillingAuditEvent,
    BillingAuditEventType,
    BillingStatus,
    GatewayOrder,
    OrderHandle,
    PaymentState,
    PaymentTransaction,
    SettlementResult,
    VerificationRequest,
)
from .signature import PaymentSignatureVerifier

logger = logging.getLogger("billing")


class PaymentGateway(Protocol):
    """External payment processor integration."""

    def create_order(
        self,
        *,
        amount: int,
        currency: str,
        receipt: str,
        notes: Mapping[str, str],
    ) -> GatewayOrder:
        """Create a gateway order for ``amount`` minor units."""

    def fetch_order(self, order_id: str) -> GatewayOrder:
        """Return an existing order including its notes."""


class BillingEventLogger(Protocol):
    """Captures structured billing audit events."""

    def log(self, event: BillingAuditEvent) -> None:
        ...


class LedgerRepository(Protocol):
    """Persistence operations required by the billing service."""

    def atomic(self) -> AbstractContextManager["LedgerRepository"]:
        ...

    def get_account(self, user_id: str) -> Optional[Account]:
        ...

    def update_account(self, *, expected: Account, updated: Account) -> bool:
        ...

    def get_transaction(self, payment_id: str) -> Optional[PaymentTransaction]:
        ...

    def insert_transaction_if_absent(self, transaction: PaymentTransaction) -> bool:
        ...

    def list_transactions(self, user_id: str, *, limit: int = 20) -> Sequence[PaymentTransaction]:
        ...


class _StaleAccount(Exception):
    """The account row changed between read and conditional write."""


@dataclass(slots=True)
class BillingService:
    """Coordinates order creation, payment verification and settlement."""

    repository: LedgerRepository
    gateway: Optional[PaymentGateway]
    signature_verifier: Optional[PaymentSignatureVerifier]
    event_logger: BillingEventLogger
    subscription_period_days: int = DEFAULT_SUBSCRIPTION_PERIOD_DAYS
    max_settle_attempts: int = 3
    clock: Optional[Callable[[], datetime]] = None

    def _now(self) -> datetime:
        if self.clock is not None:
            return self.clock()
        return datetime.now(timezone.utc)

    def create_order(
        self,
        user: AuthenticatedUser,
        *,
        plan_id: Optional[str] = None,
        mode: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> OrderHandle:
        plan = self._resolve_plan(plan_id, mode=mode, currency=currency)
        if self.repository.get_account(user.id) is None:
            raise ProfileNotFound()

        gateway = self._require_gateway()
        notes = {"user_id": user.id, "plan_id": plan.key.value, "kind": plan.kind.value}
        try:
            order = gateway.create_order(
                amount=plan.amount_minor_units,
                currency=plan.currency.value,
                receipt=self._build_receipt(user.id, plan),
                notes=notes,
            )
        except GatewayRequestError as exc:
            logger.error("Order creation failed for user=%s plan=%s: %s", user.id, plan.key.value, exc)
            raise OrderCreationFailed(
                f"Order Failed: {exc}",
                detail={"provider_status": exc.status_code} if exc.status_code else None,
            ) from exc

        self.event_logger.log(
            BillingAuditEvent(
                event_type=BillingAuditEventType.ORDER_CREATED,
                user_id=user.id,
                order_id=order.id,
                metadata={"plan_id": plan.key.value, "amount": str(order.amount), "currency": order.currency},
            )
        )
        return OrderHandle.from_gateway(order)

    def verify_and_settle(self, user: AuthenticatedUser, request: VerificationRequest) -> SettlementResult:
        try:
            plan = self._verify(user, request)
            logger.debug("Payment %s is %s", request.payment_id, PaymentState.VERIFIED.value)
            result = self._settle(user, request, plan)
        except BillingError as exc:
            self.event_logger.log(
                BillingAuditEvent(
                    event_type=BillingAuditEventType.PAYMENT_REJECTED,
                    user_id=user.id,
                    order_id=request.order_id,
                    payment_id=request.payment_id,
                    metadata={"reason": exc.code},
                )
            )
            raise

        self.event_logger.log(
            BillingAuditEvent(
                event_type=BillingAuditEventType.PAYMENT_SETTLED,
                user_id=user.id,
                order_id=request.order_id,
                payment_id=request.payment_id,
                metadata={"plan_id": plan.key.value, "balance": str(result.balance)},
            )
        )
        return result

    def get_status(self, user: AuthenticatedUser, *, transaction_limit: int = 20) -> BillingStatus:
        account = self.repository.get_account(user.id)
        if account is None:
            raise ProfileNotFound()
        transactions = self.repository.list_transactions(user.id, limit=transaction_limit)
        return BillingStatus(
            credits=account.credits,
            subscription_expiry=account.subscription_expiry,
            is_subscribed=account.is_subscribed,
            status=account.subscription_status(self._now()),
            transactions=list(transactions),
        )

    def _verify(self, user: AuthenticatedUser, request: VerificationRequest) -> PlanDefinition:
        """Run every check that must pass before any mutation."""

        if not request.is_complete:
            raise IncompleteVerificationData()

        if self.repository.get_transaction(request.payment_id) is not None:
            raise DuplicatePayment()

        verifier = self._require_signature_verifier()
        if not verifier.verify(request.order_id, request.payment_id, request.signature):
            raise InvalidSignature()

        return self._resolve_ordered_plan(user, request)

    def _resolve_ordered_plan(self, user: AuthenticatedUser, request: VerificationRequest) -> PlanDefinition:
        gateway = self._require_gateway()
        try:
            order = gateway.fetch_order(request.order_id)
        except GatewayRequestError as exc:
            logger.error("Order lookup failed for order=%s: %s", request.order_id, exc)
            raise OrderLookupFailed(f"Order lookup failed: {exc}") from exc

        ordered_plan_id = order.notes.get("plan_id")
        try:
            plan = get_plan_definition(ordered_plan_id) if ordered_plan_id else None
        except UnknownPlanError:
            plan = None
        if plan is None:
            raise PlanMismatch("Order does not reference a known plan")
        if order.notes.get("user_id") != user.id:
            raise PlanMismatch("Order was created for a different user")
        if order.amount != plan.amount_minor_units or order.currency != plan.currency.value:
            raise PlanMismatch("Order amount does not match the plan price")

        if request.has_plan_selector:
            requested = self._resolve_plan(request.plan_id, mode=request.mode, currency=request.currency)
            if requested.key != plan.key:
                logger.warning(
                    "Plan mismatch for order=%s ordered=%s requested=%s user=%s",
                    order.id,
                    plan.key.value,
                    requested.key.value,
                    user.id,
                )
                raise PlanMismatch()
        return plan

    def _settle(self, user: AuthenticatedUser, request: VerificationRequest, plan: PlanDefinition) -> SettlementResult:
        for attempt in range(1, self.max_settle_attempts + 1):
            if attempt > 1 and self.repository.get_transaction(request.payment_id) is not None:
                raise DuplicatePayment()

            account = self.repository.get_account(user.id)
            if account is None:
                raise ProfileNotFound()

            now = self._now()
            updated = apply_plan(account, plan, now=now, period_days=self.subscription_period_days)
            transaction = PaymentTransaction(
                user_id=user.id,
                payment_id=request.payment_id,
                order_id=request.order_id,
                plan_id=plan.key,
                amount=plan.amount,
                currency=plan.currency,
                created_at=now,
            )

            try:
                with self.repository.atomic() as ledger:
                    if not ledger.update_account(expected=account, updated=updated):
                        raise _StaleAccount()
                    if not ledger.insert_transaction_if_absent(transaction):
                        raise DuplicatePayment()
            except _StaleAccount:
                logger.info(
                    "Settlement conflict for user=%s payment=%s attempt=%s",
                    user.id,
                    request.payment_id,
                    attempt,
                )
                self.event_logger.log(
                    BillingAuditEvent(
                        event_type=BillingAuditEventType.SETTLEMENT_CONFLICT,
                        user_id=user.id,
                        payment_id=request.payment_id,
                        metadata={"attempt": str(attempt)},
                    )
                )
                continue

            return SettlementResult(
                balance=updated.credits,
                subscription_expiry=updated.subscription_expiry,
                transaction=transaction,
            )

        raise ConcurrencyConflict()

    def _resolve_plan(
        self,
        plan_id: Optional[str],
        *,
        mode: Optional[str],
        currency: Optional[str],
    ) -> PlanDefinition:
        try:
            return resolve_plan(plan_id, mode=mode, currency=currency)
        except UnknownPlanError as exc:
            raise InvalidPlan(str(exc)) from exc

    def _require_gateway(self) -> PaymentGateway:
        if self.gateway is None:
            raise GatewayConfigurationError()
        return self.gateway

    def _require_signature_verifier(self) -> PaymentSignatureVerifier:
        if self.signature_verifier is None:
            raise GatewayConfigurationError()
        return self.signature_verifier

    def _build_receipt(self, user_id: str, plan: PlanDefinition) -> str:
        prefix = "s" if plan.is_subscription else "c"
        millis = int(self._now().timestamp() * 1000)
        return f"rcpt_{prefix}_{user_id[:8]}_{millis}"


__all__ = [
    "BillingEventLogger",
    "BillingService",
    "LedgerRepository",
    "PaymentGateway",
]
