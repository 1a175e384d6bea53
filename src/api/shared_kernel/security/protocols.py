"""Protocols for the collaborators of the request handler wrapper.

The shared kernel only knows these interfaces. The concrete binder lives in
infrastructure, the concrete audit logger in the audit bounded context.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from shared_kernel.security.context import SecurityContext


class BoundUnitOfWork(Protocol):
    """A security context applied to one session and transaction."""

    context: SecurityContext

    @property
    def session(self) -> AsyncSession:
        """The session whose transaction carries the binding."""
        ...

    async def unbind(self) -> None:
        """Release the binding. Idempotent."""
        ...


class SecurityContextBinder(Protocol):
    """Binds a SecurityContext around a unit of work.

    The returned context manager must release the binding on every exit
    path, including exceptions and cancellation.
    """

    def bind(
        self, context: SecurityContext
    ) -> AbstractAsyncContextManager[BoundUnitOfWork]:
        ...


class AuditRecorder(Protocol):
    """Best-effort sink for audit entries produced by a request."""

    def record_nowait(self, entry: Any) -> None:
        """Schedule an entry for recording. Never raises."""
        ...
