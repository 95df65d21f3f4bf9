"""Static plan catalog shared by checkout validation and price display."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from core.plan_constants import DEFAULT_CURRENCY, DEFAULT_TRIAL_DAYS, PlanTier, parse_plan_tier

_CURRENCY_SYMBOLS: Mapping[str, str] = {"BRL": "R$", "USD": "US$", "EUR": "€"}


@dataclass(frozen=True, slots=True)
class PlanDefinition:
    plan_id: PlanTier
    display_name: str
    monthly_price_minor: int
    currency: str = DEFAULT_CURRENCY
    trial_days: int = DEFAULT_TRIAL_DAYS

    @property
    def monthly_price(self) -> float:
        return self.monthly_price_minor / 100


_PLAN_DEFINITIONS: Tuple[PlanDefinition, ...] = (
    PlanDefinition(PlanTier.STARTER, "Starter", 4900),
    PlanDefinition(PlanTier.PRO, "Pro", 9900),
    PlanDefinition(PlanTier.BUSINESS, "Business", 19900),
    PlanDefinition(PlanTier.ENTERPRISE, "Enterprise", 49900),
)

_CATALOG: Mapping[PlanTier, PlanDefinition] = MappingProxyType(
    {definition.plan_id: definition for definition in _PLAN_DEFINITIONS}
)

# Every tier must be priced; an unpriced tier fails at import, not at checkout.
_MISSING = set(PlanTier) - set(_CATALOG)
if _MISSING:  # pragma: no cover - guarded at import
    raise RuntimeError(f"Plan catalog is missing definitions for: {sorted(_MISSING)}")


def lookup(plan_id: object) -> Optional[PlanDefinition]:
    """Return the plan definition for ``plan_id`` or ``None`` when it is unknown."""
    tier = parse_plan_tier(plan_id)
    if tier is None:
        return None
    return _CATALOG[tier]


def list_plans() -> Tuple[PlanDefinition, ...]:
    return _PLAN_DEFINITIONS


def format_price(plan: PlanDefinition) -> str:
    symbol = _CURRENCY_SYMBOLS.get(plan.currency, plan.currency)
    return f"{symbol} {plan.monthly_price:.2f}"


def serialize_plan(plan: PlanDefinition) -> Dict[str, Any]:
    return {
        "planId": plan.plan_id.value,
        "displayName": plan.display_name,
        "trialDays": plan.trial_days,
        "monthlyPriceMinor": plan.monthly_price_minor,
        "currency": plan.currency,
        "formattedPrice": format_price(plan),
    }


__all__ = ["PlanDefinition", "format_price", "list_plans", "lookup", "serialize_plan"]
