"""Trial subscription session creation.

The orchestrator validates a ``SubscriptionRequest`` in a fixed order and only
then talks to the selected payment provider:

1. every field present and non-blank (``missing_field``)
2. plan known to the catalog (``unknown_plan``)
3. tenant present in the registry (``tenant_not_found``)
4. one bounded call to the selected provider adapter

Sessions created within one idempotency window are recorded in the session
ledger, so repeated submissions for the same tenant and plan get the same
provider session back instead of a second live checkout. The ledger is a
best-effort cache: a read or write failure is logged and never discards a
session the provider already created.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional, Protocol

from core.logging import get_logger
from services import plan_catalog_service
from services.tenant_registry import TenantRecord

from .base import TrialSessionProvider
from .checkout_metrics import observe_provider_latency, record_session_request
from .config import CheckoutSettings
from .errors import (
    CheckoutError,
    NotFoundError,
    ProviderCallError,
    ProviderError,
    ProviderNotConfiguredError,
    ServiceError,
    ValidationError,
)
from .idempotency import generate_trial_checkout_key
from .session_ledger import SessionLedger
from .session_types import ProviderChoice, SessionResult, SubscriptionRequest, is_navigable_url

logger = get_logger(__name__)


class TenantLookup(Protocol):
    def exists(self, tenant_id: str) -> Optional[TenantRecord]:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionOrchestrator:
    """Turn a subscription intent into a provider-hosted checkout redirect."""

    def __init__(
        self,
        *,
        registry: TenantLookup,
        adapters: Mapping[ProviderChoice, TrialSessionProvider],
        settings: CheckoutSettings,
        ledger: Optional[SessionLedger] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._registry = registry
        self._adapters = dict(adapters)
        self._settings = settings
        self._ledger = ledger
        self._clock = clock

    async def create_session(self, request: SubscriptionRequest, provider: ProviderChoice) -> SessionResult:
        try:
            result, deduplicated = await self._create_session(request, provider)
        except CheckoutError as exc:
            record_session_request(provider.value, exc.kind)
            raise
        record_session_request(provider.value, "deduplicated" if deduplicated else "created")
        return result

    async def _create_session(self, request: SubscriptionRequest, provider: ProviderChoice) -> tuple[SessionResult, bool]:
        if not request.is_complete():
            raise ValidationError.missing_field()

        plan = plan_catalog_service.lookup(request.plan)
        if plan is None:
            raise ValidationError.unknown_plan(request.plan)

        try:
            tenant = await asyncio.to_thread(self._registry.exists, request.tenant_id)
        except Exception as exc:
            logger.exception("Tenant lookup failed for tenant=%s", request.tenant_id)
            raise ServiceError.registry_unavailable() from exc
        if tenant is None:
            raise NotFoundError.tenant_not_found()

        adapter = self._adapters.get(provider)
        if adapter is None:
            logger.error("No adapter registered for provider %s", provider.value)
            raise ProviderError.not_configured(provider.label)

        now = self._clock()
        idempotency_key = generate_trial_checkout_key(
            provider.value,
            tenant.id,
            plan.plan_id.value,
            window_seconds=self._settings.idempotency_window_seconds,
            now=now,
        )
        existing = await self._find_existing(idempotency_key, provider, tenant.id, plan.plan_id.value, now)
        if existing is not None:
            logger.info(
                "Reusing %s checkout session %s for tenant=%s plan=%s",
                provider.value,
                existing.session_or_preference_id,
                tenant.id,
                plan.plan_id.value,
            )
            return existing, True

        result = await self._call_provider(adapter, provider, tenant, plan, request.email, idempotency_key)

        await self._remember(idempotency_key, provider, tenant.id, plan.plan_id.value, result, now)
        logger.info(
            "Created %s checkout session %s for tenant=%s plan=%s",
            provider.value,
            result.session_or_preference_id,
            tenant.id,
            plan.plan_id.value,
        )
        return result, False

    async def _find_existing(
        self, idempotency_key: str, provider: ProviderChoice, tenant_id: str, plan: str, now: datetime
    ) -> Optional[SessionResult]:
        if self._ledger is None:
            return None
        try:
            existing = await asyncio.to_thread(self._ledger.get, idempotency_key, now=now)
            if existing is None:
                existing = await asyncio.to_thread(self._ledger.latest_for, provider.value, tenant_id, plan, now=now)
        except OSError as exc:
            logger.warning("Session ledger lookup failed; continuing without dedupe: %s", exc)
            return None
        return existing

    async def _remember(
        self,
        idempotency_key: str,
        provider: ProviderChoice,
        tenant_id: str,
        plan: str,
        result: SessionResult,
        now: datetime,
    ) -> None:
        if self._ledger is None:
            return
        try:
            await asyncio.to_thread(
                self._ledger.record,
                idempotency_key,
                provider=provider.value,
                tenant_id=tenant_id,
                plan=plan,
                result=result,
                now=now,
            )
        except OSError as exc:
            logger.warning(
                "Could not record %s session %s in the ledger: %s", provider.value, result.session_or_preference_id, exc
            )

    async def _call_provider(
        self,
        adapter: TrialSessionProvider,
        provider: ProviderChoice,
        tenant: TenantRecord,
        plan: plan_catalog_service.PlanDefinition,
        email: str,
        idempotency_key: str,
    ) -> SessionResult:
        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                adapter.create_trial_session(
                    tenant.id,
                    plan,
                    email,
                    self._settings.return_routes,
                    idempotency_key=idempotency_key,
                ),
                timeout=self._settings.provider_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.warning(
                "%s session creation exceeded %.1fs for tenant=%s",
                provider.label,
                self._settings.provider_timeout_seconds,
                tenant.id,
            )
            raise ProviderError.timeout(provider.label) from exc
        except ProviderNotConfiguredError as exc:
            logger.error("%s is not configured: %s", provider.label, exc)
            raise ProviderError.not_configured(provider.label) from exc
        except ProviderCallError as exc:
            logger.warning(
                "%s session creation failed for tenant=%s status=%s: %s payload=%s",
                provider.label,
                tenant.id,
                exc.status_code,
                exc,
                exc.payload,
            )
            if exc.timed_out:
                raise ProviderError.timeout(provider.label) from exc
            raise ProviderError.creation_failed(provider.label) from exc
        except Exception as exc:
            logger.exception("%s adapter raised an unexpected error for tenant=%s", provider.label, tenant.id)
            raise ProviderError.creation_failed(provider.label) from exc
        finally:
            observe_provider_latency(provider.value, time.perf_counter() - started)

        if not result.session_or_preference_id or not is_navigable_url(result.redirect_url):
            logger.warning(
                "%s returned an unusable session id=%r url=%r", provider.label, result.session_or_preference_id, result.redirect_url
            )
            raise ProviderError.creation_failed(provider.label)
        return result


__all__ = ["SessionOrchestrator", "TenantLookup"]
