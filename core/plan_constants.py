"""Shared plan identifiers used across services and routers."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence


class PlanTier(str, Enum):
    STARTER = "starter"
    PRO = "pro"
    BUSINESS = "business"
    ENTERPRISE = "enterprise"

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.value


SUPPORTED_PLAN_TIERS: Sequence[PlanTier] = tuple(PlanTier)

DEFAULT_TRIAL_DAYS = 14
DEFAULT_CURRENCY = "BRL"


def parse_plan_tier(value: object) -> Optional[PlanTier]:
    """Return the ``PlanTier`` for ``value`` or ``None`` when it is not a known plan."""
    if isinstance(value, PlanTier):
        return value
    if not isinstance(value, str):
        return None
    try:
        return PlanTier(value.strip().lower())
    except ValueError:
        return None


__all__ = ["DEFAULT_CURRENCY", "DEFAULT_TRIAL_DAYS", "PlanTier", "SUPPORTED_PLAN_TIERS", "parse_plan_tier"]
