"""Razorpay orders integration built on the official SDK client."""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import razorpay
from pydantic import ValidationError
from razorpay import errors as razorpay_errors
from requests import RequestException

from .models import GatewayOrder

logger = logging.getLogger("billing.gateway")

DEFAULT_API_BASE = "https://api.razorpay.com"

_ERROR_STATUS = {
    razorpay_errors.BadRequestError: 400,
    razorpay_errors.GatewayError: 502,
    razorpay_errors.ServerError: 500,
}


class GatewayRequestError(RuntimeError):
    """Raised when the gateway cannot be reached or rejects a request."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RazorpayGateway:
    """Creates and fetches orders through ``razorpay.Client``."""

    def __init__(
        self,
        *,
        key_id: str,
        key_secret: str,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 15.0,
        client: Optional[razorpay.Client] = None,
    ) -> None:
        if not key_id or not key_secret:
            raise ValueError("key_id and key_secret must be provided")
        self._client = client or razorpay.Client(auth=(key_id, key_secret), base_url=api_base.rstrip("/"))
        self._timeout = timeout

    def create_order(
        self,
        *,
        amount: int,
        currency: str,
        receipt: str,
        notes: Mapping[str, str],
    ) -> GatewayOrder:
        data = {"amount": amount, "currency": currency, "receipt": receipt, "notes": dict(notes)}
        payload = self._call("order.create", self._client.order.create, data=data, timeout=self._timeout)
        return self._parse_order(payload)

    def fetch_order(self, order_id: str) -> GatewayOrder:
        payload = self._call("order.fetch", self._client.order.fetch, order_id, timeout=self._timeout)
        return self._parse_order(payload)

    def _call(self, operation: str, method, *args: Any, **kwargs: Any) -> Dict[str, Any]:
        try:
            payload = method(*args, **kwargs)
        except tuple(_ERROR_STATUS) as exc:
            status_code = next(code for cls, code in _ERROR_STATUS.items() if isinstance(exc, cls))
            logger.warning(
                "Payment gateway rejected request",
                extra={"gateway_operation": operation, "gateway_status": status_code},
            )
            raise GatewayRequestError(str(exc) or "Payment gateway request failed", status_code=status_code) from exc
        except RequestException as exc:
            logger.warning(
                "Payment gateway unreachable",
                extra={"gateway_operation": operation, "error": str(exc)},
            )
            raise GatewayRequestError(f"Failed to contact payment gateway: {exc}") from exc

        if not isinstance(payload, dict):
            raise GatewayRequestError("Unexpected response format from payment gateway")
        return payload

    def _parse_order(self, payload: Dict[str, Any]) -> GatewayOrder:
        try:
            return GatewayOrder.model_validate(payload)
        except ValidationError as exc:
            raise GatewayRequestError("Unexpected order payload from payment gateway") from exc


__all__ = ["DEFAULT_API_BASE", "GatewayRequestError", "RazorpayGateway"]
