"""HTTP routes for the IAM bounded context."""

from __future__ import annotations

from typing import Any, Mapping

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from shared_kernel.middleware.request_handler import HandlerResult
from shared_kernel.middleware.responses import get_session_from_request, to_response
from shared_kernel.security.context import Session
from shared_kernel.security.exceptions import ErrorKind, UnauthenticatedError
from shared_kernel.security.guard import effective_permissions
from shared_kernel.security.resolver import SessionContextResolver
from shared_kernel.security.session import coerce_session

router = APIRouter(tags=["iam"])

_resolver = SessionContextResolver()


@router.get("/me")
async def get_current_user(
    raw_session: Session | Mapping[str, Any] | None = Depends(
        get_session_from_request
    ),
) -> JSONResponse:
    """Describe the caller and their effective permissions.

    No database access is needed, so the request is not bound to a
    transaction. Clients use the permission map to show or hide actions;
    the server still checks every action itself.
    """
    session = coerce_session(raw_session)
    try:
        context = _resolver.resolve(session)
    except UnauthenticatedError:
        return to_response(HandlerResult.failure(ErrorKind.UNAUTHENTICATED))

    user = session.user
    return to_response(
        HandlerResult.success(
            {
                "id": user.id,
                "role": str(user.role),
                "tenant_id": context.tenant_id,
                "is_admin": context.is_admin,
                "permissions": effective_permissions(user.role, user.permissions),
            }
        )
    )
