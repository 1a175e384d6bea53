"""Security context value objects.

The SecurityContext is the per-request fact of who is acting and on behalf
of which tenant. It is derived from an authenticated session, bound to one
database transaction, and discarded when that transaction ends.

These are pure value objects with no framework or persistence imports,
which keeps them safe for the shared kernel.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Mapping


class Role(StrEnum):
    """Helpdesk user roles as issued by the authentication subsystem."""

    ADMIN = "ADMIN"
    TENANT_ADMIN = "TENANT_ADMIN"
    AGENT = "AGENT"
    USER = "USER"


@dataclass(frozen=True)
class SessionUser:
    """The authenticated principal carried by a session.

    Attributes:
        id: User identifier.
        role: Role of the user.
        tenant_id: Tenant the user belongs to; None for global admins.
        permissions: Fine-grained permission flags (meaningful for agents).
    """

    id: str
    role: Role
    tenant_id: str | None = None
    permissions: Mapping[str, bool] = field(
        default_factory=lambda: MappingProxyType({})
    )


@dataclass(frozen=True)
class Session:
    """An already-authenticated session produced by the auth subsystem."""

    user: SessionUser


@dataclass(frozen=True)
class SecurityContext:
    """Resolved security context for the current request.

    Attributes:
        tenant_id: Tenant scope. None only for a global admin.
        is_admin: True only for the global administrator role.
        user_id: Acting principal, None for system-internal operations.
    """

    tenant_id: str | None
    is_admin: bool
    user_id: str | None = None

    @property
    def is_bindable(self) -> bool:
        """Whether this context may be applied to a connection.

        A context without a tenant is only valid for a global admin.
        """
        return self.is_admin or bool(self.tenant_id)

    @classmethod
    def for_tenant(cls, tenant_id: str, user_id: str | None = None) -> SecurityContext:
        """Context scoped to a single tenant."""
        return cls(tenant_id=tenant_id, is_admin=False, user_id=user_id)

    @classmethod
    def global_admin(cls, user_id: str | None = None) -> SecurityContext:
        """Context for a global administrator with no tenant scope."""
        return cls(tenant_id=None, is_admin=True, user_id=user_id)
