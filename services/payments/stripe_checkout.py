"""Stripe Checkout adapter: one-time hosted checkout with a subscription trial."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx
import stripe

from core.logging import get_logger
from services.plan_catalog_service import PlanDefinition

from .base import TrialSessionProvider
from .config import CheckoutSettings
from .errors import ProviderCallError, ProviderNotConfiguredError
from .session_types import ProviderChoice, ReturnRoutes, SessionResult

logger = get_logger(__name__)

_SESSION_ID_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"
_TIMEOUT_ERRORS = (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)


def _append_session_placeholder(url: str) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}session_id={_SESSION_ID_PLACEHOLDER}"


class StripeCheckoutAdapter(TrialSessionProvider):
    """Create Stripe Checkout sessions in subscription mode.

    Stripe only knows success and cancel; the failure route doubles as the
    cancel URL and the pending route is not wired.
    """

    provider = ProviderChoice.STRIPE

    def __init__(self, settings: CheckoutSettings) -> None:
        self._settings = settings

    def build_session_params(
        self,
        tenant_id: str,
        plan: PlanDefinition,
        email: str,
        return_routes: ReturnRoutes,
    ) -> Dict[str, Any]:
        metadata = {"tenant_id": tenant_id, "plan": plan.plan_id.value}
        return {
            "mode": "subscription",
            "customer_email": email,
            "line_items": [{"price": self._settings.stripe_price_for(plan.plan_id), "quantity": 1}],
            "subscription_data": {
                "trial_period_days": plan.trial_days,
                "trial_settings": {"end_behavior": {"missing_payment_method": "cancel"}},
                "metadata": dict(metadata),
            },
            "payment_method_collection": "always",
            "metadata": dict(metadata),
            "success_url": _append_session_placeholder(return_routes.success),
            "cancel_url": return_routes.failure,
        }

    async def create_trial_session(
        self,
        tenant_id: str,
        plan: PlanDefinition,
        email: str,
        return_routes: ReturnRoutes,
        *,
        idempotency_key: str,
    ) -> SessionResult:
        api_key = self._settings.stripe_secret_key
        if not api_key:
            raise ProviderNotConfiguredError("STRIPE_SECRET_KEY is not set.")

        params = self.build_session_params(tenant_id, plan, email, return_routes)
        logger.info("Creating Stripe checkout session tenant=%s plan=%s", tenant_id, plan.plan_id.value)
        try:
            session = await stripe.checkout.Session.create_async(
                api_key=api_key,
                idempotency_key=idempotency_key,
                **params,
            )
        except stripe.APIConnectionError as exc:
            raise ProviderCallError(str(exc), timed_out=_is_timeout(exc)) from exc
        except stripe.StripeError as exc:
            payload = exc.json_body if isinstance(exc.json_body, dict) else {}
            raise ProviderCallError(str(exc), status_code=exc.http_status, payload=payload) from exc

        session_id = getattr(session, "id", None)
        url = getattr(session, "url", None)
        if not session_id or not url:
            raise ProviderCallError("Stripe response is missing the session id or url.")
        return SessionResult(session_or_preference_id=str(session_id), redirect_url=str(url))


def _is_timeout(exc: BaseException) -> bool:
    """Walk the cause chain for the transport timeout the Stripe HTTP client wrapped."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, _TIMEOUT_ERRORS):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


__all__ = ["StripeCheckoutAdapter"]
