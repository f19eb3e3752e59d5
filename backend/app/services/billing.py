"""Application wiring for the billing service."""
from __future__ import annotations

import logging
from functools import lru_cache
from threading import Lock
from typing import Dict, Mapping, Optional
from uuid import uuid4

from ..billing import (
    BillingAuditEvent,
    BillingEventLogger,
    BillingService,
    GatewayOrder,
    GatewayRequestError,
    PaymentGateway,
    PaymentSignatureVerifier,
    RazorpayGateway,
)
from ..billing.config import GATEWAY_SANDBOX, BillingConfig, load_billing_config
from ..billing.repository import PostgresLedgerRepository


logger = logging.getLogger("billing")


class LoggingBillingEventLogger(BillingEventLogger):
    """Event logger forwarding billing audit events to logging."""

    def log(self, event: BillingAuditEvent) -> None:
        logger.info(
            "Billing event %s user=%s order=%s payment=%s metadata=%s",
            event.event_type.value,
            event.user_id,
            event.order_id,
            event.payment_id,
            event.metadata,
            extra={"billing_event": event.event_type.value},
        )


class LocalSandboxPaymentGateway(PaymentGateway):
    """In-process gateway for local development; orders vanish on restart."""

    def __init__(self) -> None:
        self._orders: Dict[str, GatewayOrder] = {}
        self._lock = Lock()

    def create_order(
        self,
        *,
        amount: int,
        currency: str,
        receipt: str,
        notes: Mapping[str, str],
    ) -> GatewayOrder:
        order = GatewayOrder(
            id=f"order_{uuid4().hex[:14]}",
            amount=amount,
            currency=currency,
            receipt=receipt,
            status="created",
            notes=dict(notes),
        )
        with self._lock:
            self._orders[order.id] = order
        return order

    def fetch_order(self, order_id: str) -> GatewayOrder:
        with self._lock:
            order = self._orders.get(order_id)
        if order is None:
            raise GatewayRequestError(f"The id provided does not exist: {order_id}", status_code=400)
        return order


def build_payment_gateway(config: BillingConfig) -> Optional[PaymentGateway]:
    if config.gateway_name == GATEWAY_SANDBOX:
        return LocalSandboxPaymentGateway()
    if not config.has_credentials:
        logger.error("Payment gateway credentials missing; orders cannot be created")
        return None
    return RazorpayGateway(
        key_id=config.key_id,
        key_secret=config.key_secret,
        api_base=config.api_base,
        timeout=config.gateway_timeout,
    )


def build_billing_service(config: BillingConfig) -> BillingService:
    verifier = PaymentSignatureVerifier(config.key_secret) if config.key_secret else None
    return BillingService(
        repository=PostgresLedgerRepository(),
        gateway=build_payment_gateway(config),
        signature_verifier=verifier,
        event_logger=LoggingBillingEventLogger(),
        subscription_period_days=config.subscription_period_days,
        max_settle_attempts=config.max_settle_attempts,
    )


@lru_cache(maxsize=1)
def get_billing_service() -> BillingService:
    return build_billing_service(load_billing_config())


__all__ = [
    "LocalSandboxPaymentGateway",
    "LoggingBillingEventLogger",
    "build_billing_service",
    "build_payment_gateway",
    "get_billing_service",
]
