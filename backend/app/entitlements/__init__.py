"""Entitlements domain: plan catalog, accounts and grant computation."""

from .catalog import (
    PLAN_CATALOG,
    PlanDefinition,
    UnknownPlanError,
    get_plan_definition,
    resolve_plan,
)
from .models import (
    Account,
    Currency,
    PlanKey,
    PlanKind,
    PurchaseMode,
    SubscriptionStatus,
)
from .service import DEFAULT_SUBSCRIPTION_PERIOD_DAYS, apply_plan, extend_subscription

__all__ = [
    "PLAN_CATALOG",
    "DEFAULT_SUBSCRIPTION_PERIOD_DAYS",
    "Account",
    "Currency",
    "PlanDefinition",
    "PlanKey",
    "PlanKind",
    "PurchaseMode",
    "SubscriptionStatus",
    "UnknownPlanError",
    "apply_plan",
    "extend_subscription",
    "get_plan_definition",
    "resolve_plan",
]
