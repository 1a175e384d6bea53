"""Composition root for the request handler wrapper.

Routes depend on get_request_handler and nothing else to reach the
database; tests override it with a wrapper over a fake binder.
"""

from functools import lru_cache

from audit.dependencies import get_audit_logger
from infrastructure.database.dependencies import get_context_binder
from infrastructure.settings import get_security_settings
from shared_kernel.middleware.request_handler import RequestHandlerWrapper
from shared_kernel.middleware.responses import get_session_from_request
from shared_kernel.security.resolver import SessionContextResolver


@lru_cache
def get_request_handler() -> RequestHandlerWrapper:
    """Get the application's RequestHandlerWrapper."""
    return RequestHandlerWrapper(
        resolver=SessionContextResolver(),
        binder=get_context_binder(),
        session_loader=get_session_from_request,
        audit_recorder=get_audit_logger(),
        timeout_seconds=get_security_settings().request_timeout_seconds,
    )
