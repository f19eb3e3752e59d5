"""API routes exposing order creation, payment verification and billing status."""
from __future__ import annotations

from typing import Union

from fastapi import APIRouter, Depends

from ..billing import AuthenticatedUser, UnknownAction
from ..schemas.billing import (
    ACTION_CREATE_ORDER,
    ACTION_VERIFY_PAYMENT,
    BillingStatusResponse,
    CreateOrderResponse,
    PaymentActionRequest,
    VerifyPaymentResponse,
)
from ..services.billing import get_billing_service
from .dependencies import get_authenticated_user


router = APIRouter(tags=["billing"])


@router.post("/payment", response_model=None)
def handle_payment(
    payload: PaymentActionRequest,
    *,
    current_user: AuthenticatedUser = Depends(get_authenticated_user),
) -> Union[CreateOrderResponse, VerifyPaymentResponse]:
    service = get_billing_service()
    action = payload.normalized_action

    if action == ACTION_CREATE_ORDER:
        handle = service.create_order(
            current_user,
            plan_id=payload.plan,
            mode=payload.mode,
            currency=payload.currency,
        )
        return CreateOrderResponse.from_handle(handle)

    if action == ACTION_VERIFY_PAYMENT:
        result = service.verify_and_settle(current_user, payload.to_verification_request())
        return VerifyPaymentResponse.from_settlement(result)

    raise UnknownAction(f"Unknown action: {action or payload.action}")


@router.get("/api/billing/status", response_model=BillingStatusResponse)
def read_billing_status(
    *,
    current_user: AuthenticatedUser = Depends(get_authenticated_user),
) -> BillingStatusResponse:
    service = get_billing_service()
    return BillingStatusResponse.from_status(service.get_status(current_user))
