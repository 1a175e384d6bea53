"""Domain probe for security context resolution and access checks.

Following Domain-Oriented Observability patterns, this probe captures
domain-significant events of the resolver and the access guard: who was
resolved, and which checks denied access.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class SecurityContextProbe(Protocol):
    """Domain probe for security context resolution and guard checks."""

    def context_resolved(
        self,
        tenant_id: str | None,
        user_id: str,
        is_admin: bool,
    ) -> None:
        """Record that a security context was derived from a session."""
        ...

    def session_missing(self) -> None:
        """Record that a request arrived without a valid session."""
        ...

    def role_denied(
        self,
        user_id: str | None,
        role: str,
        allowed_roles: Iterable[str],
    ) -> None:
        """Record that a caller's role was not in the allowed set."""
        ...

    def permission_denied(
        self,
        user_id: str | None,
        role: str,
        permission: str,
    ) -> None:
        """Record that a fine-grained permission check denied access."""
        ...

    def tenant_access_denied(
        self,
        user_id: str | None,
        tenant_id: str | None,
        target_tenant_id: str | None,
    ) -> None:
        """Record that a caller tried to reach another tenant's resource."""
        ...

    def with_context(self, context: ObservationContext) -> SecurityContextProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultSecurityContextProbe:
    """Default implementation of SecurityContextProbe using structlog."""

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

    def with_context(
        self, context: ObservationContext
    ) -> DefaultSecurityContextProbe:
        """Create a new probe with observation context bound."""
        return DefaultSecurityContextProbe(logger=self._logger, context=context)

    def context_resolved(
        self,
        tenant_id: str | None,
        user_id: str,
        is_admin: bool,
    ) -> None:
        self._logger.debug(
            "security_context_resolved",
            **self._event_kwargs(
                tenant_id=tenant_id,
                user_id=user_id,
                is_admin=is_admin,
            ),
        )

    def session_missing(self) -> None:
        self._logger.info(
            "security_context_session_missing",
            **self._event_kwargs(),
        )

    def role_denied(
        self,
        user_id: str | None,
        role: str,
        allowed_roles: Iterable[str],
    ) -> None:
        self._logger.warning(
            "security_role_denied",
            **self._event_kwargs(
                user_id=user_id,
                role=str(role),
                allowed_roles=sorted(str(r) for r in allowed_roles),
            ),
        )

    def permission_denied(
        self,
        user_id: str | None,
        role: str,
        permission: str,
    ) -> None:
        self._logger.warning(
            "security_permission_denied",
            **self._event_kwargs(
                user_id=user_id,
                role=str(role),
                permission=str(permission),
            ),
        )

    def tenant_access_denied(
        self,
        user_id: str | None,
        tenant_id: str | None,
        target_tenant_id: str | None,
    ) -> None:
        self._logger.warning(
            "security_tenant_access_denied",
            **self._event_kwargs(
                user_id=user_id,
                caller_tenant_id=tenant_id,
                target_tenant_id=target_tenant_id,
            ),
        )
