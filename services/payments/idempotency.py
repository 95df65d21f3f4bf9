"""Deterministic idempotency tokens for trial checkout creation."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Optional


def window_bucket(now: datetime, window_seconds: int) -> int:
    """Return the index of the idempotency window containing ``now``."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return int(now.timestamp() // max(window_seconds, 1))


def generate_trial_checkout_key(
    provider: str,
    tenant_id: str,
    plan: str,
    *,
    window_seconds: int,
    now: Optional[datetime] = None,
) -> str:
    """Return a 40-character key shared by every request for the same tenant and plan in one window."""
    bucket = window_bucket(now or datetime.now(timezone.utc), window_seconds)
    base = "_".join(["trial_checkout", provider, tenant_id, plan, str(bucket)])
    return hashlib.sha256(base.encode("utf-8")).hexdigest()[:40]


__all__ = ["generate_trial_checkout_key", "window_bucket"]
