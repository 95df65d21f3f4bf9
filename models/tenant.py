"""SQLAlchemy model for the tenant registry read by checkout."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from database import Base


class Tenant(Base):
    """Tenant registry row. Checkout only reads ``id`` and ``name``."""

    __tablename__ = "tenants"
    __table_args__ = {"extend_existing": True}

    id = Column(String(64), primary_key=True)
    name = Column(String(160), nullable=False)
    status = Column(String(32), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


__all__ = ["Tenant"]
