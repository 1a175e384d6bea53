"""PostgreSQL implementation of IAuditLogRepository."""

from __future__ import annotations

from types import MappingProxyType

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from audit.domain.value_objects import (
    AuditAction,
    AuditLogEntry,
    AuditLogId,
    AuditResourceType,
)
from audit.infrastructure.models import AuditLogModel
from audit.ports.repositories import IAuditLogRepository


class AuditLogRepository(IAuditLogRepository):
    """PostgreSQL-backed audit trail.

    The session must come from a binding; transaction boundaries belong to
    the binder, so this repository only adds and flushes.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with a bound database session.

        Args:
            session: AsyncSession owned by a ContextBinder binding
        """
        self._session = session

    async def append(self, entry: AuditLogEntry) -> None:
        """Persist a new entry."""
        self._session.add(
            AuditLogModel(
                id=entry.id.value,
                tenant_id=entry.tenant_id,
                user_id=entry.user_id,
                action=str(entry.action),
                resource_type=str(entry.resource_type),
                resource_id=entry.resource_id,
                details=dict(entry.metadata) or None,
                ip_address=entry.ip_address,
                user_agent=entry.user_agent,
                created_at=entry.created_at,
            )
        )
        await self._session.flush()

    async def list_for_tenant(
        self,
        tenant_id: str,
        user_id: str | None = None,
        resource_type: AuditResourceType | None = None,
        action: AuditAction | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[AuditLogEntry]:
        """List a tenant's entries, newest first."""
        stmt = select(AuditLogModel).where(AuditLogModel.tenant_id == tenant_id)
        if user_id is not None:
            stmt = stmt.where(AuditLogModel.user_id == user_id)
        if resource_type is not None:
            stmt = stmt.where(AuditLogModel.resource_type == str(resource_type))
        if action is not None:
            stmt = stmt.where(AuditLogModel.action == str(action))
        stmt = (
            stmt.order_by(AuditLogModel.created_at.desc())
            .limit(limit)
            .offset(offset)
        )

        result = await self._session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    @staticmethod
    def _to_domain(model: AuditLogModel) -> AuditLogEntry:
        return AuditLogEntry(
            id=AuditLogId(value=model.id),
            tenant_id=model.tenant_id,
            user_id=model.user_id,
            action=AuditAction(model.action),
            resource_type=AuditResourceType(model.resource_type),
            resource_id=model.resource_id,
            metadata=MappingProxyType(dict(model.details or {})),
            ip_address=model.ip_address,
            user_agent=model.user_agent,
            created_at=model.created_at,
        )
