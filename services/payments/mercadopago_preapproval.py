"""Mercado Pago adapter: recurring-billing preapproval with a free trial."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from core.logging import get_logger
from services.plan_catalog_service import PlanDefinition

from .base import TrialSessionProvider
from .config import CheckoutSettings
from .errors import ProviderCallError, ProviderNotConfiguredError
from .session_types import ProviderChoice, ReturnRoutes, SessionResult

logger = get_logger(__name__)

_PRODUCT_NAME = "EstokMax"


@dataclass(slots=True)
class MercadoPagoClient:
    """HTTP client wrapper for the Mercado Pago REST API."""

    access_token: str
    base_url: str
    timeout: float = 10.0
    transport: Optional[httpx.AsyncBaseTransport] = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }
        if idempotency_key:
            headers["X-Idempotency-Key"] = idempotency_key
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, url, headers=headers, json=json)
        except httpx.TimeoutException as exc:
            raise ProviderCallError(f"Mercado Pago request timed out: {exc}", timed_out=True) from exc
        except httpx.HTTPError as exc:
            raise ProviderCallError(f"Mercado Pago request failed: {exc}") from exc

        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = {"body": response.text}
            if not isinstance(payload, dict):
                payload = {"body": payload}
            message = payload.get("message") or payload.get("error") or "Mercado Pago request failed."
            logger.warning("Mercado Pago API error %s: %s", response.status_code, payload)
            raise ProviderCallError(str(message), status_code=response.status_code, payload=payload)
        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderCallError("Mercado Pago returned a non-JSON response.") from exc
        if not isinstance(body, dict):
            raise ProviderCallError("Mercado Pago returned an unexpected response shape.")
        return body

    async def create_preapproval(self, payload: Dict[str, Any], *, idempotency_key: str) -> Dict[str, Any]:
        """Create a subscription preapproval and return the raw response."""
        logger.info("Creating Mercado Pago preapproval external_reference=%s", payload.get("external_reference"))
        return await self._request("POST", "/preapproval", json=payload, idempotency_key=idempotency_key)


class MercadoPagoPreapprovalAdapter(TrialSessionProvider):
    """Create Mercado Pago subscription preferences with all three return routes."""

    provider = ProviderChoice.MERCADOPAGO

    def __init__(self, settings: CheckoutSettings, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._settings = settings
        self._transport = transport

    def _client(self) -> MercadoPagoClient:
        token = self._settings.mercadopago_access_token
        if not token:
            raise ProviderNotConfiguredError("MERCADOPAGO_ACCESS_TOKEN is not set.")
        return MercadoPagoClient(
            access_token=token,
            base_url=self._settings.mercadopago_base_url,
            timeout=self._settings.provider_timeout_seconds,
            transport=self._transport,
        )

    def build_preapproval_payload(
        self,
        tenant_id: str,
        plan: PlanDefinition,
        email: str,
        return_routes: ReturnRoutes,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "reason": f"{_PRODUCT_NAME} subscription - {plan.display_name} plan",
            "auto_recurring": {
                "frequency": 1,
                "frequency_type": "months",
                "transaction_amount": plan.monthly_price,
                "currency_id": plan.currency,
                "free_trial": {"frequency": plan.trial_days, "frequency_type": "days"},
            },
            "back_url": return_routes.success,
            "back_urls": {
                "success": return_routes.success,
                "failure": return_routes.failure,
                "pending": return_routes.pending,
            },
            "payer_email": email,
            "external_reference": tenant_id,
            "metadata": {"tenant_id": tenant_id, "plan": plan.plan_id.value},
        }
        if self._settings.mercadopago_notification_url:
            payload["notification_url"] = self._settings.mercadopago_notification_url
        return payload

    async def create_trial_session(
        self,
        tenant_id: str,
        plan: PlanDefinition,
        email: str,
        return_routes: ReturnRoutes,
        *,
        idempotency_key: str,
    ) -> SessionResult:
        client = self._client()
        payload = self.build_preapproval_payload(tenant_id, plan, email, return_routes)
        preference = await client.create_preapproval(payload, idempotency_key=idempotency_key)
        preference_id = preference.get("id")
        init_point = preference.get("init_point")
        if not preference_id or not init_point:
            logger.warning("Mercado Pago preapproval response missing id/init_point: %s", preference)
            raise ProviderCallError("Mercado Pago response is missing the preference id or init_point.")
        return SessionResult(session_or_preference_id=str(preference_id), redirect_url=str(init_point))


__all__ = ["MercadoPagoClient", "MercadoPagoPreapprovalAdapter"]
