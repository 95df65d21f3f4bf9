import asyncio
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import pytest

os.environ.setdefault("DATABASE_ALLOW_NON_POSTGRES", "1")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("DATABASE_URL", os.environ["TEST_DATABASE_URL"])

import database  # noqa: E402
import models  # noqa: E402,F401
from services.payments.base import TrialSessionProvider  # noqa: E402
from services.payments.config import CheckoutSettings  # noqa: E402
from services.payments.session_ledger import SessionLedger  # noqa: E402
from services.payments.session_types import ProviderChoice, SessionResult  # noqa: E402
from services.tenant_registry import TenantRecord  # noqa: E402

FIXED_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeTenantRegistry:
    """In-memory tenant registry that counts lookups."""

    def __init__(self, tenants: Optional[Dict[str, str]] = None) -> None:
        self.tenants = dict(tenants or {})
        self.calls: List[str] = []

    def exists(self, tenant_id: str) -> Optional[TenantRecord]:
        self.calls.append(tenant_id)
        name = self.tenants.get(tenant_id)
        if name is None:
            return None
        return TenantRecord(id=tenant_id, name=name)


class RecordingAdapter(TrialSessionProvider):
    """Provider double that records calls and returns numbered sessions."""

    def __init__(
        self,
        provider: ProviderChoice,
        *,
        error: Optional[BaseException] = None,
        delay: float = 0.0,
        result: Optional[SessionResult] = None,
    ) -> None:
        self.provider = provider
        self.error = error
        self.delay = delay
        self.result = result
        self.calls: List[Dict[str, Any]] = []

    async def create_trial_session(self, tenant_id, plan, email, return_routes, *, idempotency_key):
        self.calls.append(
            {
                "tenant_id": tenant_id,
                "plan": plan,
                "email": email,
                "return_routes": return_routes,
                "idempotency_key": idempotency_key,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result
        number = len(self.calls)
        return SessionResult(
            session_or_preference_id=f"{self.provider.value}_sess_{number}",
            redirect_url=f"https://checkout.example.com/{self.provider.value}/{number}",
        )


@pytest.fixture()
def checkout_settings(tmp_path: Path) -> CheckoutSettings:
    return CheckoutSettings(
        app_base_url="https://app.example.com",
        stripe_secret_key="sk_test_demo",
        stripe_publishable_key="pk_test_demo",
        mercadopago_access_token="TEST-token",
        mercadopago_public_key="TEST-public",
        mercadopago_base_url="https://api.mercadopago.test",
        mercadopago_notification_url="https://app.example.com/api/webhooks/mercadopago",
        provider_timeout_seconds=2.0,
        idempotency_window_seconds=600,
        session_store_path=str(tmp_path / "checkout_sessions.json"),
    )


@pytest.fixture()
def session_ledger(tmp_path: Path) -> SessionLedger:
    return SessionLedger(tmp_path / "ledger.json", ttl_seconds=600)


@pytest.fixture()
def tenant_registry() -> FakeTenantRegistry:
    return FakeTenantRegistry({"t1": "Padaria Central"})


@pytest.fixture()
def db_session() -> Generator:
    database.Base.metadata.create_all(bind=database.engine)
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()
        database.Base.metadata.drop_all(bind=database.engine)


@pytest.fixture()
def make_adapter():
    """Return the ``RecordingAdapter`` factory for provider doubles."""
    return RecordingAdapter


@pytest.fixture()
def fixed_now() -> datetime:
    return FIXED_NOW
