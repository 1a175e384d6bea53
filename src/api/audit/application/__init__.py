"""Audit application layer."""

from audit.application.audit_logger import (
    AuditLogger,
    client_ip,
    format_audit_action,
    user_agent,
)

__all__ = ["AuditLogger", "client_ip", "format_audit_action", "user_agent"]
