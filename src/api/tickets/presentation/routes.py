"""HTTP routes for the Tickets bounded context.

Row-level security does the tenant filtering. Routes that name a tenant
also check it explicitly before touching the database.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy import select
from ulid import ULID

from audit.application.audit_logger import client_ip, user_agent
from audit.domain.value_objects import AuditAction, AuditLogEntry, AuditResourceType
from infrastructure.security_dependencies import get_request_handler
from shared_kernel.middleware.request_handler import RequestHandlerWrapper, RequestScope
from shared_kernel.middleware.responses import to_response
from shared_kernel.security.guard import AccessGuard, check_tenant_access
from tickets.infrastructure.models import DEFAULT_STATUS, TicketModel

router = APIRouter(tags=["tickets"])

_guard = AccessGuard()


class CreateTicketRequest(BaseModel):
    """Request to open a ticket.

    tenant_id is only honoured for global admins; everyone else creates in
    their own tenant.
    """

    title: str = Field(..., min_length=1, max_length=255)
    tenant_id: str | None = None


def serialize_ticket(ticket: TicketModel) -> dict[str, Any]:
    """JSON shape of a ticket."""
    return {
        "id": ticket.id,
        "tenant_id": ticket.tenant_id,
        "title": ticket.title,
        "status": ticket.status,
        "created_at": ticket.created_at,
        "updated_at": ticket.updated_at,
    }


async def _visible_tickets(_: Request, scope: RequestScope) -> list[dict[str, Any]]:
    result = await scope.session.execute(
        select(TicketModel).order_by(TicketModel.created_at.desc())
    )
    return [serialize_ticket(ticket) for ticket in result.scalars().all()]


@router.get("/tickets")
async def list_tickets(
    request: Request,
    wrapper: RequestHandlerWrapper = Depends(get_request_handler),
) -> JSONResponse:
    """List every ticket the caller's context can see."""
    return to_response(await wrapper.handle(request, _visible_tickets))


@router.get("/tenants/{tenant_id}/tickets")
async def list_tenant_tickets(
    tenant_id: str,
    request: Request,
    wrapper: RequestHandlerWrapper = Depends(get_request_handler),
) -> JSONResponse:
    """List a single tenant's tickets.

    Returns 403 for a tenant other than the caller's, unless the caller is
    a global admin.
    """

    async def handler(_: Request, scope: RequestScope) -> list[dict[str, Any]]:
        check_tenant_access(scope.context, tenant_id)
        result = await scope.session.execute(
            select(TicketModel)
            .where(TicketModel.tenant_id == tenant_id)
            .order_by(TicketModel.created_at.desc())
        )
        return [serialize_ticket(ticket) for ticket in result.scalars().all()]

    return to_response(await wrapper.handle(request, handler))


@router.post("/tickets")
async def create_ticket(
    body: CreateTicketRequest,
    request: Request,
    wrapper: RequestHandlerWrapper = Depends(get_request_handler),
) -> JSONResponse:
    """Open a ticket and record it in the audit trail."""

    async def handler(request: Request, scope: RequestScope) -> dict[str, Any]:
        tenant_id = _guard.tenant_id_for_create(scope.context, body.tenant_id)
        ticket = TicketModel(
            id=str(ULID()),
            tenant_id=tenant_id,
            title=body.title,
            status=DEFAULT_STATUS,
        )
        scope.session.add(ticket)
        await scope.session.flush()

        scope.audit(
            AuditLogEntry.create(
                tenant_id=tenant_id,
                action=AuditAction.CREATE,
                resource_type=AuditResourceType.TICKET,
                user_id=scope.context.user_id,
                resource_id=ticket.id,
                metadata={"title": body.title},
                ip_address=client_ip(request),
                user_agent=user_agent(request),
            )
        )
        return serialize_ticket(ticket)

    return to_response(
        await wrapper.handle(request, handler),
        success_status=status.HTTP_201_CREATED,
    )
