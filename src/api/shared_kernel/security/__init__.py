"""Tenant-isolation security context: resolution, access checks and errors.

Binding the context onto a database transaction lives in
``infrastructure.database.binder``; the shared kernel only knows it through
the protocols in ``shared_kernel.security.protocols``.
"""

from shared_kernel.security.context import (
    Role,
    SecurityContext,
    Session,
    SessionUser,
)
from shared_kernel.security.exceptions import (
    ConflictError,
    ContextBindingFailure,
    ErrorKind,
    ForbiddenError,
    NotFoundError,
    SecurityError,
    UnauthenticatedError,
)
from shared_kernel.security.guard import (
    AccessGuard,
    AgentPermission,
    check_tenant_access,
    require_permission,
    require_role,
)
from shared_kernel.security.resolver import SessionContextResolver

__all__ = [
    "AccessGuard",
    "AgentPermission",
    "ConflictError",
    "ContextBindingFailure",
    "ErrorKind",
    "ForbiddenError",
    "NotFoundError",
    "Role",
    "SecurityContext",
    "SecurityError",
    "Session",
    "SessionContextResolver",
    "SessionUser",
    "UnauthenticatedError",
    "check_tenant_access",
    "require_permission",
    "require_role",
]
