"""Access guard: role, permission and tenant-equality checks.

All checks are synchronous and side-effect free apart from the probe, so
they can be unit tested without a database. Role checks and tenant checks
are deliberately independent: the SecurityContext carries no role, the
role travels on the session.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Iterable, Mapping

from shared_kernel.security.context import Role, SecurityContext
from shared_kernel.security.exceptions import ForbiddenError
from shared_kernel.security.observability import (
    DefaultSecurityContextProbe,
    SecurityContextProbe,
)


class AgentPermission(StrEnum):
    """Fine-grained permission flags granted to support agents."""

    CREATE_CATEGORIES = "canCreateCategories"
    EDIT_CATEGORIES = "canEditCategories"
    DELETE_CATEGORIES = "canDeleteCategories"
    ASSIGN_AGENTS = "canAssignAgents"
    RESET_PASSWORDS = "canResetPasswords"
    INVITE_USERS = "canInviteUsers"
    DELETE_USERS = "canDeleteUsers"
    VIEW_ALL_TICKETS = "canViewAllTickets"
    EDIT_ALL_TICKETS = "canEditAllTickets"


# Roles that bypass fine-grained permission checks
PRIVILEGED_ROLES = frozenset({Role.ADMIN, Role.TENANT_ADMIN})


def has_role(role: str, allowed_roles: Iterable[str]) -> bool:
    """Whether role is one of allowed_roles."""
    return role in set(allowed_roles)


def has_permission(
    role: str,
    permission: str,
    permission_map: Mapping[str, bool] | None,
) -> bool:
    """Whether a role holding permission_map is granted permission.

    Admins and tenant admins hold every permission. Agents hold exactly the
    flags set to True in their map. Every other role holds none.
    """
    if role in PRIVILEGED_ROLES:
        return True
    if role == Role.AGENT:
        return (permission_map or {}).get(str(permission)) is True
    return False


def can_access_tenant(ctx: SecurityContext, target_tenant_id: str | None) -> bool:
    """Whether ctx may touch resources of target_tenant_id."""
    if ctx.is_admin:
        return True
    return ctx.tenant_id is not None and ctx.tenant_id == target_tenant_id


def effective_permissions(
    role: str,
    permission_map: Mapping[str, bool] | None,
) -> dict[str, bool]:
    """Full permission map for a role, for display or client-side gating."""
    return {
        str(permission): has_permission(role, permission, permission_map)
        for permission in AgentPermission
    }


class AccessGuard:
    """Raising variants of the access checks, with denials reported to a probe."""

    def __init__(self, probe: SecurityContextProbe | None = None) -> None:
        self._probe = probe or DefaultSecurityContextProbe()

    def require_role(
        self,
        ctx: SecurityContext,
        role: str,
        allowed_roles: Iterable[str],
    ) -> None:
        """Raise ForbiddenError unless role is in allowed_roles."""
        allowed = set(allowed_roles)
        if not has_role(role, allowed):
            self._probe.role_denied(
                user_id=ctx.user_id, role=role, allowed_roles=allowed
            )
            raise ForbiddenError("Forbidden: role not allowed")

    def require_permission(
        self,
        ctx: SecurityContext,
        role: str,
        permission: str,
        permission_map: Mapping[str, bool] | None,
    ) -> None:
        """Raise ForbiddenError unless role is granted permission."""
        if not has_permission(role, permission, permission_map):
            self._probe.permission_denied(
                user_id=ctx.user_id, role=role, permission=permission
            )
            raise ForbiddenError("Forbidden: missing permission")

    def check_tenant_access(
        self,
        ctx: SecurityContext,
        target_tenant_id: str | None,
    ) -> None:
        """Raise ForbiddenError unless ctx may touch target_tenant_id."""
        if not can_access_tenant(ctx, target_tenant_id):
            self._probe.tenant_access_denied(
                user_id=ctx.user_id,
                tenant_id=ctx.tenant_id,
                target_tenant_id=target_tenant_id,
            )
            raise ForbiddenError("Forbidden: tenant mismatch")

    def tenant_id_for_create(
        self,
        ctx: SecurityContext,
        explicit_tenant_id: str | None = None,
    ) -> str:
        """Tenant a new resource should be created in.

        An explicit tenant wins once the caller is allowed to reach it.
        Otherwise the caller's own tenant is used. A global admin without
        a tenant must name one.

        Raises:
            ForbiddenError: If no tenant can be determined or reached.
        """
        if explicit_tenant_id:
            self.check_tenant_access(ctx, explicit_tenant_id)
            return explicit_tenant_id
        if ctx.tenant_id:
            return ctx.tenant_id
        raise ForbiddenError(
            "Global admin must specify tenant_id when creating resources"
        )


_default_guard = AccessGuard()


def require_role(
    ctx: SecurityContext,
    role: str,
    allowed_roles: Iterable[str],
) -> None:
    """Module-level shortcut for AccessGuard.require_role."""
    _default_guard.require_role(ctx, role, allowed_roles)


def require_permission(
    ctx: SecurityContext,
    role: str,
    permission: str,
    permission_map: Mapping[str, bool] | None,
) -> None:
    """Module-level shortcut for AccessGuard.require_permission."""
    _default_guard.require_permission(ctx, role, permission, permission_map)


def check_tenant_access(ctx: SecurityContext, target_tenant_id: str | None) -> None:
    """Module-level shortcut for AccessGuard.check_tenant_access."""
    _default_guard.check_tenant_access(ctx, target_tenant_id)
