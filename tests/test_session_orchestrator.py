from __future__ import annotations

import asyncio
import dataclasses
import threading
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from services.payments.errors import (
    ERROR_CREATION_FAILED,
    ERROR_MISSING_FIELD,
    ERROR_NOT_CONFIGURED,
    ERROR_REGISTRY_UNAVAILABLE,
    ERROR_TENANT_NOT_FOUND,
    ERROR_TIMEOUT,
    ERROR_UNKNOWN_PLAN,
    NotFoundError,
    ProviderCallError,
    ProviderError,
    ProviderNotConfiguredError,
    ServiceError,
    ValidationError,
)
from services.payments.session_ledger import SessionLedger
from services.payments.session_orchestrator import SessionOrchestrator
from services.payments.session_types import ProviderChoice, SubscriptionRequest


def _orchestrator(settings, registry, adapters, ledger=None, now=None):
    clock_value = {"now": now}

    def clock() -> datetime:
        return clock_value["now"]

    orchestrator = SessionOrchestrator(
        registry=registry,
        adapters={adapter.provider: adapter for adapter in adapters},
        settings=settings,
        ledger=ledger,
        clock=clock,
    )
    return orchestrator, clock_value


def _create(orchestrator, request, provider=ProviderChoice.STRIPE):
    return asyncio.run(orchestrator.create_session(request, provider))


@pytest.mark.parametrize(
    "payload",
    [
        {"plan": "pro", "email": "a@b.com"},
        {"tenantId": "t1", "email": "a@b.com"},
        {"tenantId": "t1", "plan": "pro"},
        {"tenantId": "  ", "plan": "pro", "email": "a@b.com"},
        {},
        None,
    ],
)
def test_missing_field_is_rejected_first(payload, checkout_settings, tenant_registry, make_adapter, fixed_now) -> None:
    adapter = make_adapter(ProviderChoice.STRIPE)
    orchestrator, _ = _orchestrator(checkout_settings, tenant_registry, [adapter], now=fixed_now)

    with pytest.raises(ValidationError) as excinfo:
        _create(orchestrator, SubscriptionRequest.from_payload(payload))

    assert excinfo.value.kind == ERROR_MISSING_FIELD
    assert tenant_registry.calls == []
    assert adapter.calls == []


def test_unknown_plan_wins_over_unknown_tenant(checkout_settings, tenant_registry, make_adapter, fixed_now) -> None:
    adapter = make_adapter(ProviderChoice.STRIPE)
    orchestrator, _ = _orchestrator(checkout_settings, tenant_registry, [adapter], now=fixed_now)

    with pytest.raises(ValidationError) as excinfo:
        _create(orchestrator, SubscriptionRequest("missing-tenant", "ultimate", "a@b.com"))

    assert excinfo.value.kind == ERROR_UNKNOWN_PLAN
    assert excinfo.value.status_code == 400
    assert tenant_registry.calls == []
    assert adapter.calls == []


def test_unknown_tenant_is_not_found(checkout_settings, tenant_registry, make_adapter, fixed_now) -> None:
    adapter = make_adapter(ProviderChoice.MERCADOPAGO)
    orchestrator, _ = _orchestrator(checkout_settings, tenant_registry, [adapter], now=fixed_now)

    with pytest.raises(NotFoundError) as excinfo:
        _create(orchestrator, SubscriptionRequest("t404", "pro", "a@b.com"), ProviderChoice.MERCADOPAGO)

    assert excinfo.value.kind == ERROR_TENANT_NOT_FOUND
    assert excinfo.value.status_code == 404
    assert tenant_registry.calls == ["t404"]
    assert adapter.calls == []


def test_valid_request_calls_selected_provider_once(checkout_settings, tenant_registry, make_adapter, fixed_now) -> None:
    stripe_adapter = make_adapter(ProviderChoice.STRIPE)
    mp_adapter = make_adapter(ProviderChoice.MERCADOPAGO)
    orchestrator, _ = _orchestrator(checkout_settings, tenant_registry, [stripe_adapter, mp_adapter], now=fixed_now)

    result = _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"))

    assert result.redirect_url.startswith("https://checkout.example.com/")
    assert len(stripe_adapter.calls) == 1
    assert mp_adapter.calls == []
    call = stripe_adapter.calls[0]
    assert call["plan"].trial_days == 14
    assert call["plan"].plan_id.value == "pro"
    assert call["email"] == "a@b.com"
    assert call["return_routes"].success == "https://app.example.com/payment/success"
    assert call["return_routes"].failure == "https://app.example.com/payment/failed"
    assert call["return_routes"].pending == "https://app.example.com/payment/pending"
    assert len(call["idempotency_key"]) == 40


def test_resubmission_within_window_returns_same_session(
    checkout_settings, tenant_registry, make_adapter, session_ledger, fixed_now
) -> None:
    adapter = make_adapter(ProviderChoice.STRIPE)
    orchestrator, clock = _orchestrator(checkout_settings, tenant_registry, [adapter], ledger=session_ledger, now=fixed_now)

    first = _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"))
    clock["now"] = fixed_now + timedelta(minutes=3)
    second = _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"))

    assert second.session_or_preference_id == first.session_or_preference_id
    assert len(adapter.calls) == 1


def test_new_window_creates_new_session(checkout_settings, tenant_registry, make_adapter, session_ledger, fixed_now) -> None:
    adapter = make_adapter(ProviderChoice.STRIPE)
    orchestrator, clock = _orchestrator(checkout_settings, tenant_registry, [adapter], ledger=session_ledger, now=fixed_now)

    first = _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"))
    clock["now"] = fixed_now + timedelta(minutes=15)
    second = _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"))

    assert second.session_or_preference_id != first.session_or_preference_id
    assert len(adapter.calls) == 2


def test_different_plan_is_not_deduplicated(checkout_settings, tenant_registry, make_adapter, session_ledger, fixed_now) -> None:
    adapter = make_adapter(ProviderChoice.STRIPE)
    orchestrator, _ = _orchestrator(checkout_settings, tenant_registry, [adapter], ledger=session_ledger, now=fixed_now)

    _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"))
    _create(orchestrator, SubscriptionRequest("t1", "starter", "a@b.com"))

    assert len(adapter.calls) == 2


def test_provider_failure_is_sanitized_and_not_retried(
    checkout_settings, tenant_registry, make_adapter, session_ledger, fixed_now
) -> None:
    error = ProviderCallError("No such price: 'price_pro_monthly'", status_code=400, payload={"error": {"code": "resource_missing"}})
    adapter = make_adapter(ProviderChoice.STRIPE, error=error)
    orchestrator, _ = _orchestrator(checkout_settings, tenant_registry, [adapter], ledger=session_ledger, now=fixed_now)

    with pytest.raises(ProviderError) as excinfo:
        _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"))

    assert excinfo.value.kind == ERROR_CREATION_FAILED
    assert excinfo.value.status_code == 500
    assert "price_pro_monthly" not in excinfo.value.message
    assert len(adapter.calls) == 1

    # A failed call leaves nothing in the ledger, so a deliberate retry reaches the provider again.
    with pytest.raises(ProviderError):
        _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"))
    assert len(adapter.calls) == 2


def test_unexpected_adapter_exception_becomes_provider_error(checkout_settings, tenant_registry, make_adapter, fixed_now) -> None:
    adapter = make_adapter(ProviderChoice.STRIPE, error=KeyError("url"))
    orchestrator, _ = _orchestrator(checkout_settings, tenant_registry, [adapter], now=fixed_now)

    with pytest.raises(ProviderError) as excinfo:
        _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"))
    assert excinfo.value.kind == ERROR_CREATION_FAILED


def test_slow_provider_times_out(checkout_settings, tenant_registry, make_adapter, fixed_now) -> None:
    settings = dataclasses.replace(checkout_settings, provider_timeout_seconds=0.05)
    adapter = make_adapter(ProviderChoice.MERCADOPAGO, delay=1.0)
    orchestrator, _ = _orchestrator(settings, tenant_registry, [adapter], now=fixed_now)

    with pytest.raises(ProviderError) as excinfo:
        _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"), ProviderChoice.MERCADOPAGO)

    assert excinfo.value.kind == ERROR_TIMEOUT


def test_http_timeout_from_adapter_maps_to_timeout(checkout_settings, tenant_registry, make_adapter, fixed_now) -> None:
    adapter = make_adapter(ProviderChoice.MERCADOPAGO, error=ProviderCallError("read timed out", timed_out=True))
    orchestrator, _ = _orchestrator(checkout_settings, tenant_registry, [adapter], now=fixed_now)

    with pytest.raises(ProviderError) as excinfo:
        _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"), ProviderChoice.MERCADOPAGO)
    assert excinfo.value.kind == ERROR_TIMEOUT


def test_unconfigured_provider_maps_to_503(checkout_settings, tenant_registry, make_adapter, fixed_now) -> None:
    adapter = make_adapter(ProviderChoice.STRIPE, error=ProviderNotConfiguredError("STRIPE_SECRET_KEY is not set."))
    orchestrator, _ = _orchestrator(checkout_settings, tenant_registry, [adapter], now=fixed_now)

    with pytest.raises(ProviderError) as excinfo:
        _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"))
    assert excinfo.value.kind == ERROR_NOT_CONFIGURED
    assert excinfo.value.status_code == 503


def test_provider_without_adapter_is_not_configured(checkout_settings, tenant_registry, make_adapter, fixed_now) -> None:
    orchestrator, _ = _orchestrator(checkout_settings, tenant_registry, [make_adapter(ProviderChoice.STRIPE)], now=fixed_now)

    with pytest.raises(ProviderError) as excinfo:
        _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"), ProviderChoice.MERCADOPAGO)
    assert excinfo.value.kind == ERROR_NOT_CONFIGURED


@pytest.mark.parametrize("url", ["", "/relative/path", "checkout.stripe.com/pay", "javascript:alert(1)"])
def test_unusable_redirect_url_is_rejected(url, checkout_settings, tenant_registry, make_adapter, fixed_now) -> None:
    from services.payments.session_types import SessionResult

    adapter = make_adapter(ProviderChoice.STRIPE, result=SessionResult("cs_1", url))
    orchestrator, _ = _orchestrator(checkout_settings, tenant_registry, [adapter], now=fixed_now)

    with pytest.raises(ProviderError) as excinfo:
        _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"))
    assert excinfo.value.kind == ERROR_CREATION_FAILED


class _BrokenRegistry:
    def __init__(self) -> None:
        self.calls = []

    def exists(self, tenant_id):
        self.calls.append(tenant_id)
        raise OperationalError("SELECT tenants.id FROM tenants", {}, Exception("database is locked"))


def test_registry_failure_becomes_service_error(checkout_settings, make_adapter, fixed_now) -> None:
    adapter = make_adapter(ProviderChoice.STRIPE)
    registry = _BrokenRegistry()
    orchestrator, _ = _orchestrator(checkout_settings, registry, [adapter], now=fixed_now)

    with pytest.raises(ServiceError) as excinfo:
        _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"))

    assert excinfo.value.kind == ERROR_REGISTRY_UNAVAILABLE
    assert excinfo.value.status_code == 500
    assert "locked" not in excinfo.value.message
    assert registry.calls == ["t1"]
    assert adapter.calls == []


def test_ledger_write_failure_still_returns_created_session(
    checkout_settings, tenant_registry, make_adapter, tmp_path, fixed_now
) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    ledger = SessionLedger(blocker / "sessions.json", ttl_seconds=600)
    adapter = make_adapter(ProviderChoice.STRIPE)
    orchestrator, _ = _orchestrator(checkout_settings, tenant_registry, [adapter], ledger=ledger, now=fixed_now)

    result = _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"))

    assert result.session_or_preference_id == "stripe_sess_1"
    assert result.redirect_url == "https://checkout.example.com/stripe/1"
    assert len(adapter.calls) == 1


def test_resubmission_across_bucket_boundary_reuses_session(
    checkout_settings, tenant_registry, make_adapter, session_ledger, fixed_now
) -> None:
    # fixed_now sits exactly on a 600s bucket boundary.
    adapter = make_adapter(ProviderChoice.STRIPE)
    orchestrator, clock = _orchestrator(
        checkout_settings, tenant_registry, [adapter], ledger=session_ledger, now=fixed_now - timedelta(seconds=1)
    )

    first = _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"))
    clock["now"] = fixed_now + timedelta(seconds=1)
    second = _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"))

    assert second == first
    assert len(adapter.calls) == 1


class _ThreadRecordingLedger(SessionLedger):
    def __init__(self, path, *, ttl_seconds):
        super().__init__(path, ttl_seconds=ttl_seconds)
        self.threads = []

    def get(self, idempotency_key, *, now=None):
        self.threads.append(threading.get_ident())
        return super().get(idempotency_key, now=now)

    def record(self, idempotency_key, **kwargs):
        self.threads.append(threading.get_ident())
        return super().record(idempotency_key, **kwargs)


def test_ledger_io_runs_off_the_event_loop_thread(
    checkout_settings, tenant_registry, make_adapter, tmp_path, fixed_now
) -> None:
    ledger = _ThreadRecordingLedger(tmp_path / "threads.json", ttl_seconds=600)
    adapter = make_adapter(ProviderChoice.STRIPE)
    orchestrator, _ = _orchestrator(checkout_settings, tenant_registry, [adapter], ledger=ledger, now=fixed_now)

    _create(orchestrator, SubscriptionRequest("t1", "pro", "a@b.com"))

    assert len(ledger.threads) == 2
    assert threading.get_ident() not in ledger.threads
