"""Dependency injection for the Audit bounded context."""

from functools import lru_cache

from audit.application.audit_logger import AuditLogger
from audit.infrastructure.audit_log_repository import AuditLogRepository
from infrastructure.database.dependencies import get_context_binder


@lru_cache
def get_audit_logger() -> AuditLogger:
    """Get the process-wide AuditLogger.

    Cached so that every request schedules its writes on the same logger,
    which holds the references to in-flight tasks.
    """
    return AuditLogger(
        binder=get_context_binder(),
        repository_factory=AuditLogRepository,
    )
