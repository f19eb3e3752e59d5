"""Billing configuration helpers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional
import os

from ..entitlements import DEFAULT_SUBSCRIPTION_PERIOD_DAYS
from .gateway import DEFAULT_API_BASE

GATEWAY_RAZORPAY = "razorpay"
GATEWAY_SANDBOX = "sandbox"
_SUPPORTED_GATEWAYS = {GATEWAY_RAZORPAY, GATEWAY_SANDBOX}


@dataclass(frozen=True)
class BillingConfig:
    """Configuration for the payment gateway and settlement behaviour."""

    gateway_name: str
    key_id: Optional[str]
    key_secret: Optional[str]
    api_base: str
    gateway_timeout: float
    subscription_period_days: int
    max_settle_attempts: int

    @property
    def has_credentials(self) -> bool:
        return bool(self.key_id and self.key_secret)


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _to_float(value: Optional[str], *, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected float value, got {value!r}") from exc


def load_billing_config(env: Optional[Mapping[str, str]] = None) -> BillingConfig:
    """Load :class:`BillingConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    gateway_name = (env_mapping.get("PAYMENT_GATEWAY") or GATEWAY_RAZORPAY).strip().lower()
    if gateway_name not in _SUPPORTED_GATEWAYS:
        raise ValueError(f"Unsupported PAYMENT_GATEWAY {gateway_name!r}")

    key_id = (env_mapping.get("RAZORPAY_KEY_ID") or "").strip() or None
    key_secret = (env_mapping.get("RAZORPAY_KEY_SECRET") or "").strip() or None
    api_base = env_mapping.get("RAZORPAY_API_BASE") or DEFAULT_API_BASE

    gateway_timeout = _to_float(env_mapping.get("PAYMENT_GATEWAY_TIMEOUT"), default=15.0)
    if gateway_timeout <= 0:
        raise ValueError("PAYMENT_GATEWAY_TIMEOUT must be positive")

    period_days = _to_int(
        env_mapping.get("SUBSCRIPTION_PERIOD_DAYS"), default=DEFAULT_SUBSCRIPTION_PERIOD_DAYS
    )
    if period_days < 1:
        raise ValueError("SUBSCRIPTION_PERIOD_DAYS must be positive")

    max_settle_attempts = max(1, _to_int(env_mapping.get("MAX_SETTLE_ATTEMPTS"), default=3))

    return BillingConfig(
        gateway_name=gateway_name,
        key_id=key_id,
        key_secret=key_secret,
        api_base=api_base.rstrip("/"),
        gateway_timeout=gateway_timeout,
        subscription_period_days=period_days,
        max_settle_attempts=max_settle_attempts,
    )
