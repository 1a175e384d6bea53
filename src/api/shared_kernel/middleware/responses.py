"""FastAPI glue for the request handler wrapper.

The wrapper itself is framework agnostic. This module loads the session
the authentication middleware left on the request and renders a
HandlerResult as a JSON response.
"""

from __future__ import annotations

from typing import Any, Mapping

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from shared_kernel.middleware.request_handler import HandlerResult
from shared_kernel.security.context import Session


async def get_session_from_request(
    request: Request,
) -> Session | Mapping[str, Any] | None:
    """Return the session stored on ``request.state.session``, if any.

    The external authentication layer is responsible for populating it.
    """
    return getattr(request.state, "session", None)


def to_response(
    result: HandlerResult[Any],
    success_status: int | None = None,
) -> JSONResponse:
    """Render a HandlerResult.

    Failures carry only the generic message for their kind. success_status
    overrides the 200 used for successful results.
    """
    if result.ok:
        return JSONResponse(
            status_code=success_status or result.status_code,
            content=jsonable_encoder(result.value),
        )
    return JSONResponse(
        status_code=result.status_code,
        content={"error": result.message, "kind": str(result.error)},
    )
