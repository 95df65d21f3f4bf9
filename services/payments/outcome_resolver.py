"""Map provider return routes to a terminal checkout outcome."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional


class OutcomeState(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.value


@dataclass(frozen=True, slots=True)
class OutcomeView:
    outcome: OutcomeState
    title: str
    message: str


_ROUTE_OUTCOMES: Mapping[str, OutcomeState] = {
    "success": OutcomeState.SUCCESS,
    "sucesso": OutcomeState.SUCCESS,
    "failed": OutcomeState.FAILED,
    "failure": OutcomeState.FAILED,
    "fail": OutcomeState.FAILED,
    "cancel": OutcomeState.FAILED,
    "canceled": OutcomeState.FAILED,
    "cancelled": OutcomeState.FAILED,
    "pending": OutcomeState.PENDING,
}

_VIEWS: Dict[OutcomeState, OutcomeView] = {
    OutcomeState.SUCCESS: OutcomeView(
        OutcomeState.SUCCESS,
        "Trial started",
        "Your 14-day free trial is active. We will confirm your subscription by email.",
    ),
    OutcomeState.FAILED: OutcomeView(
        OutcomeState.FAILED,
        "Payment not approved",
        "We could not process your payment. Check your details and try again.",
    ),
    OutcomeState.PENDING: OutcomeView(
        OutcomeState.PENDING,
        "Payment pending",
        "Your payment is being processed. You will receive an email once it is confirmed.",
    ),
}


def resolve_outcome(route: Optional[str]) -> OutcomeState:
    """Return the outcome for ``route``; anything unrecognised is ``FAILED``."""
    if not route:
        return OutcomeState.FAILED
    segment = route.strip().rstrip("/").rsplit("/", 1)[-1].split("?", 1)[0].lower()
    return _ROUTE_OUTCOMES.get(segment, OutcomeState.FAILED)


def describe_outcome(route: Optional[str]) -> OutcomeView:
    return _VIEWS[resolve_outcome(route)]


__all__ = ["OutcomeState", "OutcomeView", "describe_outcome", "resolve_outcome"]
