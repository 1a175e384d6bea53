"""Audit domain layer."""

from audit.domain.value_objects import (
    AuditAction,
    AuditLogEntry,
    AuditLogId,
    AuditResourceType,
)

__all__ = [
    "AuditAction",
    "AuditLogEntry",
    "AuditLogId",
    "AuditResourceType",
]
