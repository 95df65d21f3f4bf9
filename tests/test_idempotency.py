from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

from services.payments.idempotency import generate_trial_checkout_key
from services.payments.session_ledger import SessionLedger
from services.payments.session_types import SessionResult

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_key_is_stable_within_window() -> None:
    first = generate_trial_checkout_key("stripe", "t1", "pro", window_seconds=600, now=NOW)
    second = generate_trial_checkout_key("stripe", "t1", "pro", window_seconds=600, now=NOW + timedelta(minutes=9))
    assert first == second
    assert len(first) == 40


def test_key_changes_with_window_tenant_plan_or_provider() -> None:
    base = generate_trial_checkout_key("stripe", "t1", "pro", window_seconds=600, now=NOW)
    assert base != generate_trial_checkout_key("stripe", "t1", "pro", window_seconds=600, now=NOW + timedelta(minutes=10))
    assert base != generate_trial_checkout_key("stripe", "t2", "pro", window_seconds=600, now=NOW)
    assert base != generate_trial_checkout_key("stripe", "t1", "starter", window_seconds=600, now=NOW)
    assert base != generate_trial_checkout_key("mercadopago", "t1", "pro", window_seconds=600, now=NOW)


def test_ledger_returns_recorded_session(tmp_path: Path) -> None:
    ledger = SessionLedger(tmp_path / "ledger.json", ttl_seconds=600)
    result = SessionResult("cs_1", "https://checkout.stripe.com/c/pay/cs_1")
    ledger.record("key-1", provider="stripe", tenant_id="t1", plan="pro", result=result, now=NOW)

    assert ledger.get("key-1", now=NOW + timedelta(minutes=5)) == result
    assert ledger.get("key-2", now=NOW) is None


def test_ledger_entries_expire_after_ttl(tmp_path: Path) -> None:
    ledger = SessionLedger(tmp_path / "ledger.json", ttl_seconds=600)
    result = SessionResult("cs_1", "https://checkout.stripe.com/c/pay/cs_1")
    ledger.record("key-1", provider="stripe", tenant_id="t1", plan="pro", result=result, now=NOW)

    assert ledger.get("key-1", now=NOW + timedelta(minutes=11)) is None


def test_ledger_survives_reload_from_disk(tmp_path: Path) -> None:
    path = tmp_path / "ledger.json"
    SessionLedger(path, ttl_seconds=600).record(
        "key-1",
        provider="mercadopago",
        tenant_id="t1",
        plan="pro",
        result=SessionResult("pref_1", "https://www.mercadopago.com.br/subscriptions/checkout?preapproval_id=pref_1"),
        now=NOW,
    )

    reopened = SessionLedger(path, ttl_seconds=600)
    stored = reopened.get("key-1", now=NOW)
    assert stored is not None
    assert stored.session_or_preference_id == "pref_1"


def test_ledger_ignores_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "ledger.json"
    path.write_text("{not json", encoding="utf-8")
    ledger = SessionLedger(path, ttl_seconds=600)
    assert ledger.get("key-1", now=NOW) is None
