"""Best-effort audit logger.

Recording happens after the primary operation's outcome is known. A failure
to record is logged and dropped: it never surfaces to the caller and is
never retried in the request path.

Each write runs in its own binding scoped to the entry's tenant, so the
audit table is subject to the same row-level security as everything else.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from audit.application.observability import AuditLoggerProbe, DefaultAuditLoggerProbe
from audit.domain.value_objects import AuditAction, AuditLogEntry, AuditResourceType
from audit.ports.repositories import IAuditLogRepository
from shared_kernel.security.context import SecurityContext
from shared_kernel.security.protocols import SecurityContextBinder

RepositoryFactory = Callable[[AsyncSession], IAuditLogRepository]

_ACTION_VERBS: dict[AuditAction, str] = {
    AuditAction.CREATE: "created",
    AuditAction.UPDATE: "updated",
    AuditAction.DELETE: "deleted",
    AuditAction.LOGIN: "logged in",
    AuditAction.LOGOUT: "logged out",
    AuditAction.ASSIGN: "assigned",
    AuditAction.UNASSIGN: "unassigned",
    AuditAction.STATUS_CHANGE: "changed status",
    AuditAction.COMMENT: "commented",
    AuditAction.INVITE: "invited",
}

_RESOURCE_NOUNS: dict[AuditResourceType, str] = {
    AuditResourceType.TICKET: "ticket",
    AuditResourceType.USER: "user",
    AuditResourceType.CATEGORY: "category",
    AuditResourceType.TENANT: "organization",
    AuditResourceType.COMMENT: "comment",
    AuditResourceType.ROLE: "role",
    AuditResourceType.PERMISSION: "permission",
    AuditResourceType.SETTINGS: "settings",
}

# Actions that read as complete without an object
_INTRANSITIVE = frozenset({AuditAction.LOGIN, AuditAction.LOGOUT})


class AuditLogger:
    """Records audit entries without ever failing the caller."""

    def __init__(
        self,
        binder: SecurityContextBinder,
        repository_factory: RepositoryFactory,
        probe: AuditLoggerProbe | None = None,
    ) -> None:
        """Initialize the logger.

        Args:
            binder: Binds the entry's tenant around each write.
            repository_factory: Builds a repository over a bound session.
            probe: Optional domain probe for observability.
        """
        self._binder = binder
        self._repository_factory = repository_factory
        self._probe = probe or DefaultAuditLoggerProbe()
        self._pending: set[asyncio.Task[None]] = set()

    async def record(self, entry: AuditLogEntry) -> None:
        """Persist entry. Failures are logged, never raised."""
        context = SecurityContext.for_tenant(entry.tenant_id, user_id=entry.user_id)
        try:
            async with self._binder.bind(context) as binding:
                await self._repository_factory(binding.session).append(entry)
        except Exception as e:
            self._probe.entry_record_failed(
                tenant_id=entry.tenant_id,
                action=str(entry.action),
                resource_type=str(entry.resource_type),
                error=e,
            )
            return

        self._probe.entry_recorded(
            tenant_id=entry.tenant_id,
            action=str(entry.action),
            resource_type=str(entry.resource_type),
        )

    def record_nowait(self, entry: AuditLogEntry) -> None:
        """Schedule record(entry) on the running loop and return immediately."""
        task = asyncio.get_running_loop().create_task(self.record(entry))
        # The loop only keeps weak references to tasks
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every scheduled write to finish."""
        if self._pending:
            await asyncio.gather(*self._pending)


def client_ip(request: Any) -> str | None:
    """Best guess at the originating client address.

    Prefers the first hop of X-Forwarded-For, then X-Real-IP, then the
    socket peer.
    """
    headers = getattr(request, "headers", None) or {}
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    client = getattr(request, "client", None)
    return client.host if client is not None else None


def user_agent(request: Any) -> str | None:
    """The request's User-Agent header, if any."""
    headers = getattr(request, "headers", None) or {}
    return headers.get("user-agent")


def format_audit_action(
    action: AuditAction | str, resource_type: AuditResourceType | str
) -> str:
    """Human-readable description such as ``created ticket`` or ``logged in``.

    Unknown actions or resource types are shown as given.
    """
    verb = _ACTION_VERBS.get(action, str(action))
    if action in _INTRANSITIVE:
        return verb
    noun = _RESOURCE_NOUNS.get(resource_type, str(resource_type))
    return f"{verb} {noun}"
