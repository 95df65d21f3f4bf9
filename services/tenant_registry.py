"""Read-only access to the tenant registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import MultipleResultsFound
from sqlalchemy.orm import Session

from core.logging import get_logger
from models.tenant import Tenant

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class TenantRecord:
    id: str
    name: str


class TenantRegistry:
    """Resolve tenant identifiers against the ``tenants`` table."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def exists(self, tenant_id: str) -> Optional[TenantRecord]:
        """Return the tenant for ``tenant_id`` when exactly one row matches."""
        if not tenant_id:
            return None
        db = self._session_factory()
        try:
            row = db.execute(select(Tenant.id, Tenant.name).where(Tenant.id == tenant_id)).one_or_none()
        except MultipleResultsFound:
            logger.warning("Tenant id %s matched more than one row; rejecting.", tenant_id)
            return None
        finally:
            db.close()
        if row is None:
            return None
        return TenantRecord(id=str(row.id), name=row.name)


__all__ = ["TenantRecord", "TenantRegistry"]
