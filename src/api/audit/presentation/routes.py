"""HTTP routes for the Audit bounded context."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from audit.application.audit_logger import format_audit_action
from audit.domain.value_objects import AuditAction, AuditLogEntry, AuditResourceType
from audit.infrastructure.audit_log_repository import AuditLogRepository
from infrastructure.security_dependencies import get_request_handler
from shared_kernel.middleware.request_handler import RequestHandlerWrapper, RequestScope
from shared_kernel.middleware.responses import to_response
from shared_kernel.security.context import Role, SecurityContext
from shared_kernel.security.exceptions import ForbiddenError
from shared_kernel.security.guard import check_tenant_access, require_role

router = APIRouter(prefix="/audit-logs", tags=["audit"])

AUDIT_READER_ROLES = (Role.ADMIN, Role.TENANT_ADMIN)


def serialize_entry(entry: AuditLogEntry) -> dict[str, Any]:
    """JSON shape of an audit entry."""
    return {
        "id": str(entry.id),
        "tenant_id": entry.tenant_id,
        "user_id": entry.user_id,
        "action": str(entry.action),
        "resource_type": str(entry.resource_type),
        "resource_id": entry.resource_id,
        "description": format_audit_action(entry.action, entry.resource_type),
        "metadata": dict(entry.metadata),
        "ip_address": entry.ip_address,
        "user_agent": entry.user_agent,
        "created_at": entry.created_at,
    }


def target_tenant(ctx: SecurityContext, requested: str | None) -> str:
    """Tenant whose trail is read: the requested one if reachable, else the caller's.

    Raises:
        ForbiddenError: If the tenant is unreachable or cannot be determined.
    """
    if requested:
        check_tenant_access(ctx, requested)
        return requested
    if ctx.tenant_id:
        return ctx.tenant_id
    raise ForbiddenError("Global admin must specify tenant_id")


@router.get("")
async def list_audit_logs(
    request: Request,
    tenant_id: str | None = Query(default=None),
    user_id: str | None = Query(default=None),
    resource_type: AuditResourceType | None = Query(default=None),
    action: AuditAction | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    wrapper: RequestHandlerWrapper = Depends(get_request_handler),
) -> JSONResponse:
    """List audit entries for a tenant, newest first.

    Only admins and tenant admins may read the trail. A global admin names
    the tenant with ``?tenant_id=``.
    """

    async def handler(_: Request, scope: RequestScope) -> list[dict[str, Any]]:
        require_role(scope.context, scope.user.role, AUDIT_READER_ROLES)
        tenant = target_tenant(scope.context, tenant_id)
        entries = await AuditLogRepository(scope.session).list_for_tenant(
            tenant,
            user_id=user_id,
            resource_type=resource_type,
            action=action,
            limit=limit,
            offset=offset,
        )
        return [serialize_entry(entry) for entry in entries]

    return to_response(await wrapper.handle(request, handler))
