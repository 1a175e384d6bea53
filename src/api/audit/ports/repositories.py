"""Repository protocol (port) for the audit trail."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from audit.domain.value_objects import AuditAction, AuditLogEntry, AuditResourceType


@runtime_checkable
class IAuditLogRepository(Protocol):
    """Append-only store for audit entries.

    Implementations run on a session bound to a security context, so reads
    are additionally filtered by row-level security.
    """

    async def append(self, entry: AuditLogEntry) -> None:
        """Persist a new entry. Entries are never updated."""
        ...

    async def list_for_tenant(
        self,
        tenant_id: str,
        user_id: str | None = None,
        resource_type: AuditResourceType | None = None,
        action: AuditAction | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[AuditLogEntry]:
        """List a tenant's entries, newest first.

        Args:
            tenant_id: Tenant whose trail to read
            user_id: Only entries by this user
            resource_type: Only entries about this kind of resource
            action: Only entries with this verb
            limit: Maximum number of entries
            offset: Number of entries to skip

        Returns:
            Matching entries ordered by created_at descending
        """
        ...
