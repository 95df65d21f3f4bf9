"""Value types shared by the checkout orchestrator and provider adapters."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional
from urllib.parse import urlparse


class ProviderChoice(str, Enum):
    STRIPE = "stripe"
    MERCADOPAGO = "mercadopago"

    @property
    def label(self) -> str:
        return "Stripe" if self is ProviderChoice.STRIPE else "Mercado Pago"

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.value


@dataclass(frozen=True, slots=True)
class SubscriptionRequest:
    tenant_id: str
    plan: str
    email: str

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "SubscriptionRequest":
        """Build a request from the JSON body, trimming values and keeping blanks as empty strings."""
        data = payload or {}
        return cls(
            tenant_id=_clean(data.get("tenantId")),
            plan=_clean(data.get("plan")),
            email=_clean(data.get("email")),
        )

    def is_complete(self) -> bool:
        return bool(self.tenant_id and self.plan and self.email)


@dataclass(frozen=True, slots=True)
class SessionResult:
    session_or_preference_id: str
    redirect_url: str


@dataclass(frozen=True, slots=True)
class ReturnRoutes:
    success: str
    failure: str
    pending: str


def _clean(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def is_navigable_url(value: object) -> bool:
    """Return True when ``value`` is an absolute http(s) URL with a host."""
    if not isinstance(value, str) or not value.strip():
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


__all__ = ["ProviderChoice", "ReturnRoutes", "SessionResult", "SubscriptionRequest", "is_navigable_url"]
