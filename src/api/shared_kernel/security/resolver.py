"""Derivation of the SecurityContext from an authenticated session.

The resolver is a pure function of the session: it never consults the
database and it fails closed when there is no session at all.
"""

from __future__ import annotations

from typing import Any, Mapping

from shared_kernel.security.context import Role, SecurityContext, Session
from shared_kernel.security.exceptions import UnauthenticatedError
from shared_kernel.security.observability import (
    DefaultSecurityContextProbe,
    SecurityContextProbe,
)
from shared_kernel.security.session import coerce_session


class SessionContextResolver:
    """Resolves a SecurityContext from a session object."""

    def __init__(self, probe: SecurityContextProbe | None = None) -> None:
        self._probe = probe or DefaultSecurityContextProbe()

    def resolve(
        self, session: Session | Mapping[str, Any] | None
    ) -> SecurityContext:
        """Derive the security context for the session's user.

        Args:
            session: The authenticated session, a raw session mapping, or None.

        Returns:
            A fresh SecurityContext. The tenant is None for a global admin
            without a tenant.

        Raises:
            UnauthenticatedError: If no valid session is present.
        """
        resolved = coerce_session(session)
        if resolved is None or resolved.user is None:
            self._probe.session_missing()
            raise UnauthenticatedError("Unauthorized: No session found")

        user = resolved.user
        context = SecurityContext(
            tenant_id=user.tenant_id or None,
            is_admin=user.role == Role.ADMIN,
            user_id=user.id,
        )

        self._probe.context_resolved(
            tenant_id=context.tenant_id,
            user_id=user.id,
            is_admin=context.is_admin,
        )
        return context
