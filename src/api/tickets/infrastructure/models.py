"""SQLAlchemy ORM model for the tickets table."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, TenantOwnedMixin, TimestampMixin

DEFAULT_STATUS = "OPEN"


class TicketModel(Base, TenantOwnedMixin, TimestampMixin):
    """ORM model for tickets table."""

    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=DEFAULT_STATUS
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<TicketModel(id={self.id}, tenant_id={self.tenant_id}, status={self.status})>"
