"""Unit tests for AccessGuard and the pure access helpers."""

from unittest.mock import MagicMock

import pytest

from shared_kernel.security.context import Role, SecurityContext
from shared_kernel.security.exceptions import ErrorKind, ForbiddenError
from shared_kernel.security.guard import (
    AccessGuard,
    AgentPermission,
    can_access_tenant,
    check_tenant_access,
    effective_permissions,
    has_permission,
    has_role,
    require_permission,
    require_role,
)

TENANT_A = SecurityContext.for_tenant("tenant-a", user_id="u-a")
ADMIN = SecurityContext.global_admin("root")


@pytest.fixture
def probe():
    return MagicMock()


@pytest.fixture
def guard(probe):
    return AccessGuard(probe=probe)


class TestPermissionMatrix:
    """Privileged roles hold everything, agents their flags, users nothing."""

    @pytest.mark.parametrize("permission", list(AgentPermission))
    @pytest.mark.parametrize("role", [Role.ADMIN, Role.TENANT_ADMIN])
    def test_privileged_roles_hold_every_permission(self, role, permission):
        assert has_permission(role, permission, None) is True
        assert has_permission(role, permission, {str(permission): False}) is True

    @pytest.mark.parametrize("permission", list(AgentPermission))
    def test_agent_holds_granted_flag(self, permission):
        assert has_permission(Role.AGENT, permission, {str(permission): True}) is True

    @pytest.mark.parametrize("permission", list(AgentPermission))
    def test_agent_lacks_ungranted_flag(self, permission):
        assert has_permission(Role.AGENT, permission, {str(permission): False}) is False
        assert has_permission(Role.AGENT, permission, {}) is False
        assert has_permission(Role.AGENT, permission, None) is False

    def test_agent_flag_must_be_exactly_true(self):
        permission = AgentPermission.ASSIGN_AGENTS
        assert has_permission(Role.AGENT, permission, {str(permission): "yes"}) is False

    @pytest.mark.parametrize("permission", list(AgentPermission))
    def test_user_holds_nothing(self, permission):
        assert has_permission(Role.USER, permission, {str(permission): True}) is False

    def test_effective_permissions_for_agent(self):
        perms = effective_permissions(
            Role.AGENT, {"canAssignAgents": True, "canDeleteUsers": False}
        )

        assert perms["canAssignAgents"] is True
        assert perms["canDeleteUsers"] is False
        assert set(perms) == {str(p) for p in AgentPermission}

    def test_effective_permissions_for_tenant_admin(self):
        assert all(effective_permissions(Role.TENANT_ADMIN, None).values())


class TestRequireRole:
    def test_allows_listed_role(self, guard, probe):
        guard.require_role(TENANT_A, Role.AGENT, [Role.AGENT, Role.TENANT_ADMIN])
        probe.role_denied.assert_not_called()

    def test_denies_unlisted_role(self, guard, probe):
        with pytest.raises(ForbiddenError) as exc_info:
            guard.require_role(TENANT_A, Role.USER, [Role.ADMIN, Role.TENANT_ADMIN])

        assert exc_info.value.kind is ErrorKind.FORBIDDEN
        probe.role_denied.assert_called_once()

    def test_has_role(self):
        assert has_role(Role.ADMIN, [Role.ADMIN])
        assert not has_role(Role.AGENT, [])


class TestRequirePermission:
    def test_agent_with_flag_passes(self, guard):
        guard.require_permission(
            TENANT_A,
            Role.AGENT,
            AgentPermission.VIEW_ALL_TICKETS,
            {"canViewAllTickets": True},
        )

    def test_agent_without_flag_is_forbidden(self, guard, probe):
        with pytest.raises(ForbiddenError):
            guard.require_permission(
                TENANT_A, Role.AGENT, AgentPermission.VIEW_ALL_TICKETS, {}
            )

        probe.permission_denied.assert_called_once_with(
            user_id="u-a",
            role=Role.AGENT,
            permission=AgentPermission.VIEW_ALL_TICKETS,
        )


class TestTenantAccess:
    """Tenant equality, with the admin bypass."""

    def test_same_tenant_allowed(self, guard):
        guard.check_tenant_access(TENANT_A, "tenant-a")

    def test_other_tenant_forbidden(self, guard, probe):
        with pytest.raises(ForbiddenError):
            guard.check_tenant_access(TENANT_A, "tenant-b")

        probe.tenant_access_denied.assert_called_once_with(
            user_id="u-a", tenant_id="tenant-a", target_tenant_id="tenant-b"
        )

    def test_admin_reaches_any_tenant(self, guard):
        guard.check_tenant_access(ADMIN, "tenant-a")
        guard.check_tenant_access(ADMIN, "tenant-b")

    def test_missing_target_forbidden_for_non_admin(self):
        assert can_access_tenant(TENANT_A, None) is False

    def test_tenantless_non_admin_reaches_nothing(self):
        ctx = SecurityContext(tenant_id=None, is_admin=False)
        assert can_access_tenant(ctx, None) is False


class TestTenantIdForCreate:
    def test_defaults_to_own_tenant(self, guard):
        assert guard.tenant_id_for_create(TENANT_A) == "tenant-a"

    def test_explicit_own_tenant(self, guard):
        assert guard.tenant_id_for_create(TENANT_A, "tenant-a") == "tenant-a"

    def test_explicit_other_tenant_forbidden(self, guard):
        with pytest.raises(ForbiddenError):
            guard.tenant_id_for_create(TENANT_A, "tenant-b")

    def test_admin_must_name_tenant(self, guard):
        with pytest.raises(ForbiddenError):
            guard.tenant_id_for_create(ADMIN)

    def test_admin_names_any_tenant(self, guard):
        assert guard.tenant_id_for_create(ADMIN, "tenant-b") == "tenant-b"


class TestModuleShortcuts:
    def test_require_role(self):
        with pytest.raises(ForbiddenError):
            require_role(TENANT_A, Role.USER, [Role.ADMIN])

    def test_require_permission(self):
        require_permission(TENANT_A, Role.TENANT_ADMIN, "canDeleteUsers", None)

    def test_check_tenant_access(self):
        with pytest.raises(ForbiddenError):
            check_tenant_access(TENANT_A, "tenant-b")
