"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from fastapi import Depends

import database
from services.payments import (
    CheckoutSettings,
    MercadoPagoPreapprovalAdapter,
    ProviderChoice,
    SessionOrchestrator,
    StripeCheckoutAdapter,
    load_checkout_settings,
)
from services.payments.session_ledger import SessionLedger
from services.tenant_registry import TenantRegistry


def get_checkout_settings() -> CheckoutSettings:
    return load_checkout_settings()


def get_tenant_registry() -> TenantRegistry:
    # Resolved per call so tests can rebind ``database.SessionLocal``.
    return TenantRegistry(lambda: database.SessionLocal())


@lru_cache(maxsize=8)
def _session_ledger(path: str, ttl_seconds: int) -> SessionLedger:
    return SessionLedger(Path(path), ttl_seconds=ttl_seconds)


def get_session_ledger(settings: CheckoutSettings = Depends(get_checkout_settings)) -> SessionLedger:
    return _session_ledger(settings.session_store_path, settings.idempotency_window_seconds)


def get_session_orchestrator(
    settings: CheckoutSettings = Depends(get_checkout_settings),
    registry: TenantRegistry = Depends(get_tenant_registry),
    ledger: SessionLedger = Depends(get_session_ledger),
) -> SessionOrchestrator:
    return SessionOrchestrator(
        registry=registry,
        adapters={
            ProviderChoice.STRIPE: StripeCheckoutAdapter(settings),
            ProviderChoice.MERCADOPAGO: MercadoPagoPreapprovalAdapter(settings),
        },
        settings=settings,
        ledger=ledger,
    )
