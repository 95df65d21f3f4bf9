"""Short-lived ledger of created checkout sessions keyed by idempotency token."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

from services.json_state_store import JsonStateStore

from .session_types import SessionResult

logger = logging.getLogger(__name__)

_MAX_ENTRIES = 500


@dataclass(slots=True)
class LedgerEntry:
    idempotency_key: str
    provider: str
    tenant_id: str
    plan: str
    session_or_preference_id: str
    redirect_url: str
    created_at: str

    def to_result(self) -> SessionResult:
        return SessionResult(session_or_preference_id=self.session_or_preference_id, redirect_url=self.redirect_url)


class SessionLedger:
    """Remember provider sessions for one idempotency window."""

    def __init__(self, path: Path, *, ttl_seconds: int) -> None:
        self._store = JsonStateStore(Path(path), "sessions", logger=logger)
        self._ttl = timedelta(seconds=ttl_seconds)

    def _load(self) -> List[LedgerEntry]:
        entries: List[LedgerEntry] = []
        for item in self._store.load():
            try:
                entries.append(LedgerEntry(**{key: str(item[key]) for key in LedgerEntry.__dataclass_fields__}))
            except (KeyError, TypeError):
                continue
        return entries

    def _prune(self, entries: List[LedgerEntry], now: datetime) -> List[LedgerEntry]:
        cutoff = now - self._ttl
        kept: List[LedgerEntry] = []
        for entry in entries:
            try:
                created = datetime.fromisoformat(entry.created_at)
            except ValueError:
                continue
            if created >= cutoff:
                kept.append(entry)
        return kept

    def get(self, idempotency_key: str, *, now: Optional[datetime] = None) -> Optional[SessionResult]:
        """Return the stored session for ``idempotency_key`` if it has not expired."""
        current = now or datetime.now(timezone.utc)
        with self._store.lock:
            for entry in self._prune(self._load(), current):
                if entry.idempotency_key == idempotency_key:
                    return entry.to_result()
        return None

    def latest_for(
        self, provider: str, tenant_id: str, plan: str, *, now: Optional[datetime] = None
    ) -> Optional[SessionResult]:
        """Return the newest unexpired session for the same provider, tenant and plan."""
        current = now or datetime.now(timezone.utc)
        with self._store.lock:
            matches = [
                entry
                for entry in self._prune(self._load(), current)
                if (entry.provider, entry.tenant_id, entry.plan) == (provider, tenant_id, plan)
            ]
        if not matches:
            return None
        return max(matches, key=lambda entry: entry.created_at).to_result()

    def record(
        self,
        idempotency_key: str,
        *,
        provider: str,
        tenant_id: str,
        plan: str,
        result: SessionResult,
        now: Optional[datetime] = None,
    ) -> None:
        current = now or datetime.now(timezone.utc)
        with self._store.lock:
            entries = [entry for entry in self._load() if entry.idempotency_key != idempotency_key]
            entries.append(
                LedgerEntry(
                    idempotency_key=idempotency_key,
                    provider=provider,
                    tenant_id=tenant_id,
                    plan=plan,
                    session_or_preference_id=result.session_or_preference_id,
                    redirect_url=result.redirect_url,
                    created_at=current.isoformat(),
                )
            )
            entries = self._prune(entries, current)[-_MAX_ENTRIES:]
            self._store.store([asdict(entry) for entry in entries])

    def reset(self, *, path: Optional[Path] = None) -> None:  # pragma: no cover - test helper
        self._store.reset(path=path)


__all__ = ["LedgerEntry", "SessionLedger"]
