"""Static catalog definitions for purchasable plans."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional, Union

from .models import Currency, PlanKey, PlanKind, PurchaseMode


class UnknownPlanError(LookupError):
    """Raised when a plan selector does not resolve to a catalog entry."""


@dataclass(frozen=True)
class PlanDefinition:
    """Describes a plan's price and the credits it grants."""

    key: PlanKey
    display_name: str
    amount: Decimal
    currency: Currency
    credits: int
    kind: PlanKind

    @property
    def amount_minor_units(self) -> int:
        """Charge amount in the currency's smallest unit (paise, cents)."""

        return int((self.amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    @property
    def is_subscription(self) -> bool:
        return self.kind == PlanKind.SUBSCRIPTION


PLAN_CATALOG: Dict[PlanKey, PlanDefinition] = {
    PlanKey.PRO_MONTHLY: PlanDefinition(
        key=PlanKey.PRO_MONTHLY,
        display_name="Pro Monthly (India)",
        amount=Decimal("399"),
        currency=Currency.INR,
        credits=100,
        kind=PlanKind.SUBSCRIPTION,
    ),
    PlanKey.CREDIT_TOPUP_100: PlanDefinition(
        key=PlanKey.CREDIT_TOPUP_100,
        display_name="100 Credits (India)",
        amount=Decimal("100"),
        currency=Currency.INR,
        credits=100,
        kind=PlanKind.ONE_TIME,
    ),
    PlanKey.CREDIT_TOPUP_GLOBAL: PlanDefinition(
        key=PlanKey.CREDIT_TOPUP_GLOBAL,
        display_name="100 Credits (Global)",
        amount=Decimal("2"),
        currency=Currency.USD,
        credits=100,
        kind=PlanKind.ONE_TIME,
    ),
    PlanKey.PRO_MONTHLY_USD: PlanDefinition(
        key=PlanKey.PRO_MONTHLY_USD,
        display_name="Pro Monthly (Global)",
        amount=Decimal("8"),
        currency=Currency.USD,
        credits=100,
        kind=PlanKind.SUBSCRIPTION,
    ),
}

_TOPUP_BY_CURRENCY: Dict[Currency, PlanKey] = {
    Currency.INR: PlanKey.CREDIT_TOPUP_100,
    Currency.USD: PlanKey.CREDIT_TOPUP_GLOBAL,
}

_SUBSCRIPTION_BY_CURRENCY: Dict[Currency, PlanKey] = {
    Currency.INR: PlanKey.PRO_MONTHLY,
    Currency.USD: PlanKey.PRO_MONTHLY_USD,
}


def get_plan_definition(plan_key: Union[PlanKey, str]) -> PlanDefinition:
    """Return a plan definition, raising if unsupported."""

    try:
        return PLAN_CATALOG[PlanKey(plan_key)]
    except (KeyError, ValueError) as exc:
        raise UnknownPlanError(f"Unknown plan: {plan_key}") from exc


def _parse_currency(currency: Optional[str]) -> Currency:
    if currency is None or not str(currency).strip():
        return Currency.INR
    try:
        return Currency(str(currency).strip().upper())
    except ValueError as exc:
        raise UnknownPlanError(f"Unsupported currency: {currency}") from exc


def resolve_plan(
    plan_id: Optional[str] = None,
    *,
    mode: Optional[str] = None,
    currency: Optional[str] = None,
) -> PlanDefinition:
    """Resolve a plan selector to exactly one catalog entry.

    ``mode="credits"`` always selects the top-up plan for ``currency``.
    ``mode="subscription"`` selects the subscription plan for ``currency``
    unless an explicit ``plan_id`` is given, which must then name a
    subscription plan. Every other selector must name a plan; nothing falls
    back to a default plan.
    """

    plan_id = (plan_id or "").strip() or None
    normalized_mode = (mode or "").strip().lower() or None

    if normalized_mode is not None:
        try:
            purchase_mode = PurchaseMode(normalized_mode)
        except ValueError as exc:
            raise UnknownPlanError(f"Unknown purchase mode: {mode}") from exc

        if purchase_mode == PurchaseMode.CREDITS:
            return PLAN_CATALOG[_TOPUP_BY_CURRENCY[_parse_currency(currency)]]
        if plan_id is None:
            return PLAN_CATALOG[_SUBSCRIPTION_BY_CURRENCY[_parse_currency(currency)]]
        plan = get_plan_definition(plan_id)
        if not plan.is_subscription:
            raise UnknownPlanError(f"Plan {plan.key.value} is not a subscription plan")
        return plan

    if plan_id is None:
        raise UnknownPlanError("A plan or purchase mode is required")
    return get_plan_definition(plan_id)
