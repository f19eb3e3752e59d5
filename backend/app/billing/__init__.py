"""Billing domain package: orders, payment verification and settlement."""

from .exceptions import (
    BillingError,
    ConcurrencyConflict,
    DuplicatePayment,
    GatewayConfigurationError,
    GatewayError,
    IncompleteVerificationData,
    InvalidPlan,
    InvalidSignature,
    OrderCreationFailed,
    OrderLookupFailed,
    PlanMismatch,
    ProfileNotFound,
    Unauthorized,
    UnknownAction,
)
from .gateway import GatewayRequestError, RazorpayGateway
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
    TransactionStatus,
    VerificationRequest,
)
from .service import (
    BillingEventLogger,
    BillingService,
    LedgerRepository,
    PaymentGateway,
)
from .signature import PaymentSignatureVerifier

__all__ = [
    "AuthenticatedUser",
    "BillingAuditEvent",
    "BillingAuditEventType",
    "BillingError",
    "BillingEventLogger",
    "BillingService",
    "BillingStatus",
    "ConcurrencyConflict",
    "DuplicatePayment",
    "GatewayConfigurationError",
    "GatewayError",
    "GatewayOrder",
    "GatewayRequestError",
    "IncompleteVerificationData",
    "InvalidPlan",
    "InvalidSignature",
    "LedgerRepository",
    "OrderCreationFailed",
    "OrderHandle",
    "OrderLookupFailed",
    "PaymentGateway",
    "PaymentSignatureVerifier",
    "PaymentState",
    "PaymentTransaction",
    "PlanMismatch",
    "ProfileNotFound",
    "RazorpayGateway",
    "SettlementResult",
    "TransactionStatus",
    "Unauthorized",
    "UnknownAction",
    "VerificationRequest",
]
