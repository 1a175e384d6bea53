"""SQLAlchemy declarative base and shared model utilities.

Every tenant-owned table carries a ``tenant_id`` column. The row-level
security policies on those tables are managed with the schema, outside
this package, and read the settings written by the ContextBinder.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utc_now() -> datetime:
    """Generate UTC timestamp for database defaults.

    Uses a named function instead of lambda for SQLAlchemy 2.0 compatibility.
    """
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    type_annotation_map: dict[type, Any] = {}


class TenantOwnedMixin:
    """Mixin for rows that belong to exactly one tenant."""

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)


class CreatedAtMixin:
    """Mixin for append-only rows: creation time only."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        insert_default=_utc_now,  # Evaluated at INSERT time
        nullable=False,
    )


class TimestampMixin(CreatedAtMixin):
    """Mixin providing created_at and updated_at timestamp columns."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        insert_default=_utc_now,
        onupdate=_utc_now,  # Evaluated at UPDATE time
        nullable=False,
    )
