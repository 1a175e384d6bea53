"""Domain probes for infrastructure observability.

Domain probes provide a high-level instrumentation API oriented around
domain semantics, keeping infrastructure code clean and testable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class _StructlogProbe:
    """Shared plumbing for structlog-backed probes."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _event_kwargs(self, **fields: Any) -> dict[str, Any]:
        """Merge context metadata with event fields (event fields win)."""
        if self._context is None:
            return fields
        return {**self._context.as_dict(), **fields}


class ConnectionProbe(Protocol):
    """Domain probe for database engine and pool observability."""

    def engine_created(self, host: str, database: str, pool_size: int) -> None:
        """Record that an async engine was created."""
        ...

    def connection_initialized(self) -> None:
        """Record that a new physical connection got deny-by-default settings."""
        ...

    def connection_initialization_failed(self, error: Exception) -> None:
        """Record that a new physical connection could not be initialized."""
        ...

    def pool_closed(self) -> None:
        """Record that the connection pool was closed."""
        ...

    def with_context(self, context: ObservationContext) -> ConnectionProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultConnectionProbe(_StructlogProbe):
    """Default implementation of ConnectionProbe using structlog."""

    def with_context(self, context: ObservationContext) -> DefaultConnectionProbe:
        """Create a new probe with observation context bound."""
        return DefaultConnectionProbe(logger=self._logger, context=context)

    def engine_created(self, host: str, database: str, pool_size: int) -> None:
        """Record that an async engine was created."""
        self._logger.info(
            "database_engine_created",
            **self._event_kwargs(host=host, database=database, pool_size=pool_size),
        )

    def connection_initialized(self) -> None:
        """Record that a new physical connection got deny-by-default settings."""
        self._logger.debug(
            "database_connection_initialized",
            **self._event_kwargs(),
        )

    def connection_initialization_failed(self, error: Exception) -> None:
        """Record that a new physical connection could not be initialized."""
        self._logger.error(
            "database_connection_initialization_failed",
            **self._event_kwargs(error=str(error), error_type=type(error).__name__),
        )

    def pool_closed(self) -> None:
        """Record that the connection pool was closed."""
        self._logger.info(
            "connection_pool_closed",
            **self._event_kwargs(),
        )


class ContextBinderProbe(Protocol):
    """Domain probe for binding security contexts onto transactions.

    Every event here is security relevant: a failure means a request was
    refused, or a pooled connection had to be thrown away.
    """

    def context_bound(
        self, tenant_id: str | None, is_admin: bool, user_id: str | None
    ) -> None:
        """Record that a context was applied and confirmed on a transaction."""
        ...

    def context_released(self, tenant_id: str | None, user_id: str | None) -> None:
        """Record that a binding was cleared and its connection released."""
        ...

    def invalid_context_rejected(self, user_id: str | None) -> None:
        """Record that a non-admin context without a tenant was refused."""
        ...

    def binding_failed(
        self, tenant_id: str | None, user_id: str | None, error: Exception
    ) -> None:
        """Record that the connection rejected the scoped settings."""
        ...

    def binding_not_confirmed(
        self,
        tenant_id: str | None,
        user_id: str | None,
        observed: tuple[Any, ...],
    ) -> None:
        """Record that the settings read back differ from the ones applied."""
        ...

    def transaction_ended_early(
        self, tenant_id: str | None, user_id: str | None
    ) -> None:
        """Record that the unit of work ended the bound transaction itself."""
        ...

    def context_reset_failed(self, user_id: str | None, error: Exception) -> None:
        """Record that resetting a connection to deny-by-default failed."""
        ...

    def connection_discard_failed(self, error: Exception) -> None:
        """Record that invalidating an unclean connection failed."""
        ...

    def with_context(self, context: ObservationContext) -> ContextBinderProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultContextBinderProbe(_StructlogProbe):
    """Default implementation of ContextBinderProbe using structlog."""

    def with_context(self, context: ObservationContext) -> DefaultContextBinderProbe:
        """Create a new probe with observation context bound."""
        return DefaultContextBinderProbe(logger=self._logger, context=context)

    def context_bound(
        self, tenant_id: str | None, is_admin: bool, user_id: str | None
    ) -> None:
        self._logger.debug(
            "security_context_bound",
            **self._event_kwargs(tenant_id=tenant_id, is_admin=is_admin, user_id=user_id),
        )

    def context_released(self, tenant_id: str | None, user_id: str | None) -> None:
        self._logger.debug(
            "security_context_released",
            **self._event_kwargs(tenant_id=tenant_id, user_id=user_id),
        )

    def invalid_context_rejected(self, user_id: str | None) -> None:
        self._logger.error(
            "security_context_invalid",
            **self._event_kwargs(
                user_id=user_id,
                message="Non-admin context without tenant refused before binding",
            ),
        )

    def binding_failed(
        self, tenant_id: str | None, user_id: str | None, error: Exception
    ) -> None:
        self._logger.error(
            "security_context_binding_failed",
            **self._event_kwargs(
                tenant_id=tenant_id,
                user_id=user_id,
                error=str(error),
                error_type=type(error).__name__,
            ),
        )

    def binding_not_confirmed(
        self,
        tenant_id: str | None,
        user_id: str | None,
        observed: tuple[Any, ...],
    ) -> None:
        self._logger.error(
            "security_context_binding_not_confirmed",
            **self._event_kwargs(
                tenant_id=tenant_id,
                user_id=user_id,
                observed=list(observed),
            ),
        )

    def transaction_ended_early(
        self, tenant_id: str | None, user_id: str | None
    ) -> None:
        self._logger.error(
            "security_context_transaction_ended_early",
            **self._event_kwargs(
                tenant_id=tenant_id,
                user_id=user_id,
                message="Unit of work committed or rolled back the bound transaction",
            ),
        )

    def context_reset_failed(self, user_id: str | None, error: Exception) -> None:
        self._logger.error(
            "security_context_reset_failed",
            **self._event_kwargs(
                user_id=user_id,
                error=str(error),
                error_type=type(error).__name__,
            ),
        )

    def connection_discard_failed(self, error: Exception) -> None:
        self._logger.error(
            "security_context_connection_discard_failed",
            **self._event_kwargs(error=str(error), error_type=type(error).__name__),
        )
