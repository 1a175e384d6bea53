"""Binding of a SecurityContext onto the transaction that runs a unit of work.

Row-level security policies in PostgreSQL read two settings, the tenant
scope and the admin flag. This module is the only writer of those settings.

The binding lives exactly as long as one explicit transaction:

1. One transaction is opened and both settings are applied with
   ``set_config(..., is_local => true)``, then read back with
   ``current_setting`` inside the same transaction. Any error or mismatch
   aborts before the unit of work runs.
2. The unit of work runs on that same session and transaction.
3. On every exit path (return, exception, timeout, cancellation) the
   transaction is finished, both settings are reset at session level to
   the deny-by-default values, and the session is closed so the connection
   goes back to the pool. A connection that cannot be reset is invalidated
   instead of being pooled.

Usage:
    binder = ContextBinder(session_factory=get_sessionmaker())

    async with binder.bind(ctx) as binding:
        result = await binding.session.execute(select(TicketModel))
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from enum import StrEnum
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from infrastructure.database.exceptions import DatabaseConnectionError
from infrastructure.observability.probes import (
    ConnectionProbe,
    ContextBinderProbe,
    DefaultConnectionProbe,
    DefaultContextBinderProbe,
)
from infrastructure.settings import SecuritySettings
from shared_kernel.security.context import SecurityContext
from shared_kernel.security.exceptions import ContextBindingFailure

if TYPE_CHECKING:
    from sqlalchemy.orm import SessionTransaction

__all__ = [
    "APPLY_SETTINGS_SQL",
    "READ_SETTINGS_SQL",
    "RESET_SETTINGS_SQL",
    "Binding",
    "BindingState",
    "ContextBinder",
    "install_pool_defaults",
    "setting_values",
]

# Tenant setting value meaning "no tenant scope"
NO_TENANT = ""
ADMIN_TRUE = "true"
ADMIN_FALSE = "false"

APPLY_SETTINGS_SQL = text(
    "SELECT set_config(:tenant_setting, :tenant_value, true), "
    "set_config(:admin_setting, :admin_value, true)"
)
READ_SETTINGS_SQL = text(
    "SELECT current_setting(:tenant_setting, true), "
    "current_setting(:admin_setting, true)"
)
RESET_SETTINGS_SQL = text(
    "SELECT set_config(:tenant_setting, '', false), "
    "set_config(:admin_setting, 'false', false)"
)
# asyncpg positional form, used on raw driver connections in pool events
POOL_DEFAULTS_SQL = (
    "SELECT set_config($1, '', false), set_config($2, 'false', false)"
)


def setting_values(context: SecurityContext) -> tuple[str, str]:
    """Values of the tenant and admin settings for a context."""
    return (
        context.tenant_id or NO_TENANT,
        ADMIN_TRUE if context.is_admin else ADMIN_FALSE,
    )


class BindingState(StrEnum):
    """Lifecycle of a security context across one unit of work."""

    RESOLVED = "resolved"
    BOUND = "bound"
    UNBOUND = "unbound"


class Binding:
    """One SecurityContext applied to one session and transaction.

    The session is only reachable while the binding is BOUND. Unbinding is
    idempotent and only ever touches this binding's own session.
    """

    def __init__(
        self,
        context: SecurityContext,
        session: AsyncSession,
        release: Callable[[Binding], Awaitable[None]],
    ) -> None:
        self.context = context
        self._session = session
        self._release = release
        self._state = BindingState.RESOLVED
        self._transaction: SessionTransaction | None = None

    @property
    def state(self) -> BindingState:
        return self._state

    @property
    def session(self) -> AsyncSession:
        """The bound session.

        Raises:
            ContextBindingFailure: If the binding is not active.
        """
        if self._state is not BindingState.BOUND:
            raise ContextBindingFailure(
                f"Session requested from a {self._state} binding"
            )
        return self._session

    def _mark_bound(self, transaction: SessionTransaction | None) -> None:
        self._transaction = transaction
        self._state = BindingState.BOUND

    def _transaction_intact(self) -> bool:
        current = self._session.sync_session.get_transaction()
        return current is not None and current is self._transaction

    async def unbind(self) -> None:
        """Clear the binding and release the connection.

        Safe to call more than once. The release runs shielded, so a
        cancellation arriving mid-release cannot leave the connection half
        reset. The caller is only cancelled once the release has finished.
        """
        if self._state is BindingState.UNBOUND:
            return
        self._state = BindingState.UNBOUND
        release = asyncio.ensure_future(self._release(self))
        try:
            await asyncio.shield(release)
        except asyncio.CancelledError:
            while not release.done():
                try:
                    await asyncio.shield(release)
                except asyncio.CancelledError:
                    continue
            raise


class ContextBinder:
    """Applies security contexts to pooled connections, one transaction at a time."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        settings: SecuritySettings | None = None,
        probe: ContextBinderProbe | None = None,
    ) -> None:
        """Initialize the binder.

        Args:
            session_factory: Creates a fresh AsyncSession per unit of work,
                typically an ``async_sessionmaker``.
            settings: Names of the two scoped settings.
            probe: Optional domain probe for observability.
        """
        self._session_factory = session_factory
        self._settings = settings or SecuritySettings()
        self._probe = probe or DefaultContextBinderProbe()

    @property
    def _names(self) -> dict[str, str]:
        return {
            "tenant_setting": self._settings.tenant_setting_name,
            "admin_setting": self._settings.admin_setting_name,
        }

    @asynccontextmanager
    async def bind(self, context: SecurityContext) -> AsyncIterator[Binding]:
        """Run the enclosed block with context bound to its own transaction.

        The transaction commits when the block exits normally and rolls back
        otherwise. The binding is always released.

        Raises:
            ContextBindingFailure: If the context is invalid, cannot be
                applied, or the block ended the bound transaction itself.
        """
        if not context.is_bindable:
            self._probe.invalid_context_rejected(user_id=context.user_id)
            raise ContextBindingFailure(
                "A non-admin security context requires a tenant"
            )

        binding = Binding(
            context=context,
            session=self._session_factory(),
            release=self._release,
        )
        try:
            await self._apply(binding)
            yield binding
            await self._complete(binding)
        finally:
            await binding.unbind()

    async def _apply(self, binding: Binding) -> None:
        context = binding.context
        session = binding._session
        expected = setting_values(context)
        tenant_value, admin_value = expected

        try:
            await session.execute(
                APPLY_SETTINGS_SQL,
                {
                    **self._names,
                    "tenant_value": tenant_value,
                    "admin_value": admin_value,
                },
            )
            result = await session.execute(READ_SETTINGS_SQL, self._names)
            observed = tuple(result.one())
        except Exception as e:
            self._probe.binding_failed(
                tenant_id=context.tenant_id, user_id=context.user_id, error=e
            )
            raise ContextBindingFailure("Failed to set security context") from e

        if observed != expected:
            self._probe.binding_not_confirmed(
                tenant_id=context.tenant_id,
                user_id=context.user_id,
                observed=observed,
            )
            raise ContextBindingFailure("Security context was not confirmed")

        binding._mark_bound(session.sync_session.get_transaction())
        self._probe.context_bound(
            tenant_id=context.tenant_id,
            is_admin=context.is_admin,
            user_id=context.user_id,
        )

    async def _complete(self, binding: Binding) -> None:
        if not binding._transaction_intact():
            self._probe.transaction_ended_early(
                tenant_id=binding.context.tenant_id,
                user_id=binding.context.user_id,
            )
            raise ContextBindingFailure(
                "Unit of work ended the bound transaction before release"
            )
        await binding._session.commit()

    async def _release(self, binding: Binding) -> None:
        session = binding._session
        try:
            if session.in_transaction():
                await session.rollback()
            await session.execute(RESET_SETTINGS_SQL, self._names)
            await session.commit()
        except Exception as e:
            self._probe.context_reset_failed(user_id=binding.context.user_id, error=e)
            await self._discard(session)
            return

        await session.close()
        self._probe.context_released(
            tenant_id=binding.context.tenant_id,
            user_id=binding.context.user_id,
        )

    async def _discard(self, session: AsyncSession) -> None:
        """Invalidate the connection so it never goes back to the pool."""
        try:
            await session.invalidate()
        except Exception as e:
            # Nothing left to do with a connection we can neither reset nor drop
            self._probe.connection_discard_failed(error=e)


def make_connect_listener(
    settings: SecuritySettings,
    probe: ConnectionProbe | None = None,
) -> Callable[[Any, Any], None]:
    """Build a pool ``connect`` listener that puts new connections in deny-by-default."""
    probe = probe or DefaultConnectionProbe()
    names = (settings.tenant_setting_name, settings.admin_setting_name)

    def _apply_deny_defaults(dbapi_connection: Any, connection_record: Any) -> None:
        try:
            dbapi_connection.run_async(
                lambda conn: conn.execute(POOL_DEFAULTS_SQL, *names)
            )
        except Exception as e:
            probe.connection_initialization_failed(error=e)
            raise DatabaseConnectionError(
                f"Failed to initialize connection defaults: {e}"
            ) from e
        probe.connection_initialized()

    return _apply_deny_defaults


def install_pool_defaults(
    engine: AsyncEngine,
    settings: SecuritySettings,
    probe: ConnectionProbe | None = None,
) -> None:
    """Register the deny-by-default initializer on an engine's pool."""
    event.listen(engine.sync_engine, "connect", make_connect_listener(settings, probe))
