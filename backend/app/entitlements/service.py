"""Entitlement computation for settled purchases."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from .catalog import PlanDefinition
from .models import Account

DEFAULT_SUBSCRIPTION_PERIOD_DAYS = 30


def extend_subscription(
    current_expiry: Optional[datetime],
    *,
    now: datetime,
    period_days: int = DEFAULT_SUBSCRIPTION_PERIOD_DAYS,
) -> datetime:
    """Return the expiry after adding one billing period.

    An active period is extended from its current end; a lapsed or missing one
    restarts from ``now``. The result is never earlier than ``current_expiry``.
    """

    if period_days < 1:
        raise ValueError("period_days must be >= 1")

    basis = now
    if current_expiry is not None and current_expiry > now:
        basis = current_expiry
    return basis + timedelta(days=period_days)


def apply_plan(
    account: Account,
    plan: PlanDefinition,
    *,
    now: datetime,
    period_days: int = DEFAULT_SUBSCRIPTION_PERIOD_DAYS,
) -> Account:
    """Compute the account state after granting ``plan``."""

    update: dict = {"credits": account.credits + plan.credits}
    if plan.is_subscription:
        update["subscription_expiry"] = extend_subscription(
            account.subscription_expiry, now=now, period_days=period_days
        )
        update["is_subscribed"] = True
    return account.model_copy(update=update)
