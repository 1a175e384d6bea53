"""Value objects for the audit domain.

Audit entries are immutable once created and are never updated or deleted
by this application.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Mapping

from ulid import ULID


class AuditAction(StrEnum):
    """Verbs recorded in the audit trail."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    ASSIGN = "ASSIGN"
    UNASSIGN = "UNASSIGN"
    STATUS_CHANGE = "STATUS_CHANGE"
    COMMENT = "COMMENT"
    INVITE = "INVITE"


class AuditResourceType(StrEnum):
    """Nouns recorded in the audit trail."""

    TICKET = "TICKET"
    USER = "USER"
    CATEGORY = "CATEGORY"
    TENANT = "TENANT"
    COMMENT = "COMMENT"
    ROLE = "ROLE"
    PERMISSION = "PERMISSION"
    SETTINGS = "SETTINGS"


@dataclass(frozen=True)
class AuditLogId:
    """Identifier for an audit log entry.

    Uses ULID, so identifiers sort by creation time.
    """

    value: str

    def __str__(self) -> str:
        """Return string representation."""
        return self.value

    @classmethod
    def generate(cls) -> AuditLogId:
        """Generate a new AuditLogId using ULID."""
        return cls(value=str(ULID()))

    @classmethod
    def from_string(cls, value: str) -> AuditLogId:
        """Create AuditLogId from string value.

        Raises:
            ValueError: If value is not a valid ULID
        """
        try:
            ULID.from_str(value)
        except ValueError as e:
            raise ValueError(f"Invalid AuditLogId: {value}") from e

        return cls(value=value)


@dataclass(frozen=True)
class AuditLogEntry:
    """One security-relevant action.

    Entries are tenant-attributed even when a global admin acts: the tenant
    is the one whose data was touched.
    """

    id: AuditLogId
    tenant_id: str
    action: AuditAction
    resource_type: AuditResourceType
    user_id: str | None = None
    resource_id: str | None = None
    metadata: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def __post_init__(self) -> None:
        if not self.tenant_id:
            raise ValueError("Audit entries must be attributed to a tenant")

    @classmethod
    def create(
        cls,
        tenant_id: str,
        action: AuditAction,
        resource_type: AuditResourceType,
        user_id: str | None = None,
        resource_id: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLogEntry:
        """Create a new entry stamped with a fresh id and the current time.

        Raises:
            ValueError: If tenant_id is empty.
        """
        return cls(
            id=AuditLogId.generate(),
            tenant_id=tenant_id,
            action=AuditAction(action),
            resource_type=AuditResourceType(resource_type),
            user_id=user_id,
            resource_id=resource_id,
            metadata=MappingProxyType(dict(metadata or {})),
            ip_address=ip_address,
            user_agent=user_agent,
        )
