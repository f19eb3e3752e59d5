"""Error taxonomy for the payment and entitlement flows."""
from __future__ import annotations

from fastapi import status

from ..errors import ServiceError


class BillingError(ServiceError):
    """Base class for payment and settlement failures."""

    code = "billing_error"
    default_message = "Billing request failed."


class Unauthorized(BillingError):
    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class InvalidPlan(BillingError):
    code = "invalid_plan"
    default_message = "Invalid plan selection."


class IncompleteVerificationData(BillingError):
    code = "incomplete_verification_data"
    default_message = "Incomplete verification data"


class DuplicatePayment(BillingError):
    code = "duplicate_payment"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Duplicate payment attempt"


class InvalidSignature(BillingError):
    code = "invalid_signature"
    default_message = "Signature mismatch"


class PlanMismatch(BillingError):
    code = "plan_mismatch"
    default_message = "Payment does not match the ordered plan."


class ConcurrencyConflict(BillingError):
    code = "concurrency_conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Account was updated concurrently; please retry."


class ProfileNotFound(BillingError):
    code = "profile_not_found"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Profile missing"


class GatewayError(BillingError):
    """Failures talking to the external payment gateway."""

    code = "gateway_error"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Payment gateway request failed."


class OrderCreationFailed(GatewayError):
    code = "order_creation_failed"
    default_message = "Order creation failed."


class OrderLookupFailed(GatewayError):
    code = "order_lookup_failed"
    default_message = "Order lookup failed."


class GatewayConfigurationError(BillingError):
    code = "gateway_misconfigured"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server misconfiguration: payment gateway credentials missing"


class UnknownAction(BillingError):
    code = "unknown_action"
    default_message = "Unknown action."


__all__ = [
    "BillingError",
    "ConcurrencyConflict",
    "DuplicatePayment",
    "GatewayConfigurationError",
    "GatewayError",
    "IncompleteVerificationData",
    "InvalidPlan",
    "InvalidSignature",
    "OrderCreationFailed",
    "OrderLookupFailed",
    "PlanMismatch",
    "ProfileNotFound",
    "Unauthorized",
    "UnknownAction",
]
