"""Environment-driven settings for trial checkout."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from core.env import env_float, env_int, env_str, env_url
from core.plan_constants import PlanTier

from .session_types import ReturnRoutes

DEFAULT_APP_BASE_URL = "http://localhost:3000"
DEFAULT_MERCADOPAGO_BASE_URL = "https://api.mercadopago.com"
DEFAULT_SESSION_STORE_PATH = "uploads/payments/checkout_sessions.json"

SUCCESS_PATH = "/payment/success"
FAILURE_PATH = "/payment/failed"
PENDING_PATH = "/payment/pending"


@dataclass(frozen=True, slots=True)
class CheckoutSettings:
    app_base_url: str = DEFAULT_APP_BASE_URL
    stripe_secret_key: Optional[str] = None
    stripe_publishable_key: Optional[str] = None
    stripe_prices: Dict[PlanTier, str] = field(default_factory=dict)
    mercadopago_access_token: Optional[str] = None
    mercadopago_public_key: Optional[str] = None
    mercadopago_base_url: str = DEFAULT_MERCADOPAGO_BASE_URL
    mercadopago_notification_url: Optional[str] = None
    provider_timeout_seconds: float = 10.0
    idempotency_window_seconds: int = 600
    session_store_path: str = DEFAULT_SESSION_STORE_PATH

    @property
    def return_routes(self) -> ReturnRoutes:
        return ReturnRoutes(
            success=f"{self.app_base_url}{SUCCESS_PATH}",
            failure=f"{self.app_base_url}{FAILURE_PATH}",
            pending=f"{self.app_base_url}{PENDING_PATH}",
        )

    def stripe_price_for(self, plan: PlanTier) -> str:
        return self.stripe_prices.get(plan) or f"price_{plan.value}_monthly"


def load_checkout_settings() -> CheckoutSettings:
    """Read checkout settings from the environment."""
    app_base_url = env_url("APP_BASE_URL", DEFAULT_APP_BASE_URL)
    stripe_prices = {
        tier: price
        for tier in PlanTier
        if (price := env_str(f"STRIPE_PRICE_{tier.value.upper()}"))
    }
    return CheckoutSettings(
        app_base_url=app_base_url,
        stripe_secret_key=env_str("STRIPE_SECRET_KEY"),
        stripe_publishable_key=env_str("STRIPE_PUBLISHABLE_KEY"),
        stripe_prices=stripe_prices,
        mercadopago_access_token=env_str("MERCADOPAGO_ACCESS_TOKEN"),
        mercadopago_public_key=env_str("MERCADOPAGO_PUBLIC_KEY"),
        mercadopago_base_url=env_url("MERCADOPAGO_BASE_URL", DEFAULT_MERCADOPAGO_BASE_URL),
        mercadopago_notification_url=env_str(
            "MERCADOPAGO_NOTIFICATION_URL", f"{app_base_url}/api/webhooks/mercadopago"
        ),
        provider_timeout_seconds=env_float("CHECKOUT_PROVIDER_TIMEOUT_SECONDS", 10.0, minimum=0.1),
        idempotency_window_seconds=env_int("CHECKOUT_IDEMPOTENCY_WINDOW_SECONDS", 600, minimum=1),
        session_store_path=env_str("CHECKOUT_SESSION_STORE_FILE", DEFAULT_SESSION_STORE_PATH) or DEFAULT_SESSION_STORE_PATH,
    )


__all__ = [
    "CheckoutSettings",
    "FAILURE_PATH",
    "PENDING_PATH",
    "SUCCESS_PATH",
    "load_checkout_settings",
]
