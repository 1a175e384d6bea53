"""Domain probes for the audit logger."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class AuditLoggerProbe(Protocol):
    """Domain probe for audit trail writes."""

    def entry_recorded(
        self, tenant_id: str, action: str, resource_type: str
    ) -> None:
        """Record that an audit entry was persisted."""
        ...

    def entry_record_failed(
        self,
        tenant_id: str,
        action: str,
        resource_type: str,
        error: Exception,
    ) -> None:
        """Record that an audit entry was lost."""
        ...

    def with_context(self, context: ObservationContext) -> AuditLoggerProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultAuditLoggerProbe:
    """Default implementation of AuditLoggerProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _event_kwargs(self, **fields: Any) -> dict[str, Any]:
        if self._context is None:
            return fields
        return {**self._context.as_dict(), **fields}

    def with_context(self, context: ObservationContext) -> DefaultAuditLoggerProbe:
        """Create a new probe with observation context bound."""
        return DefaultAuditLoggerProbe(logger=self._logger, context=context)

    def entry_recorded(
        self, tenant_id: str, action: str, resource_type: str
    ) -> None:
        self._logger.debug(
            "audit_entry_recorded",
            **self._event_kwargs(
                tenant_id=tenant_id, action=action, resource_type=resource_type
            ),
        )

    def entry_record_failed(
        self,
        tenant_id: str,
        action: str,
        resource_type: str,
        error: Exception,
    ) -> None:
        self._logger.error(
            "audit_entry_record_failed",
            **self._event_kwargs(
                tenant_id=tenant_id,
                action=action,
                resource_type=resource_type,
                error=str(error),
                error_type=type(error).__name__,
            ),
        )
