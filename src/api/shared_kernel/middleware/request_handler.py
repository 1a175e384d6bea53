"""Request handler wrapper: resolve, bind, run, classify, unbind.

This is the only approved way for a business handler to reach the
database. Handlers receive a RequestScope carrying the resolved
SecurityContext, the session user (for role checks) and the bound session.
They never construct or bind contexts themselves.

Usage:
    wrapper = RequestHandlerWrapper(
        resolver=SessionContextResolver(),
        binder=get_context_binder(),
        session_loader=get_session_from_request,
    )

    async def list_tickets(request, scope: RequestScope) -> list[dict]:
        rows = await scope.session.execute(select(TicketModel))
        return [...]

    result = await wrapper.handle(request, list_tickets)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Generic, Mapping, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, NoResultFound
from ulid import ULID

from shared_kernel.middleware.observability import (
    DefaultRequestHandlerProbe,
    RequestHandlerProbe,
)
from shared_kernel.observability_context import ObservationContext
from shared_kernel.security.context import SecurityContext, Session, SessionUser
from shared_kernel.security.exceptions import (
    ConflictError,
    ContextBindingFailure,
    ErrorKind,
    ForbiddenError,
    NotFoundError,
    SecurityError,
    UnauthenticatedError,
)
from shared_kernel.security.resolver import SessionContextResolver
from shared_kernel.security.session import coerce_session

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from shared_kernel.security.protocols import (
        AuditRecorder,
        SecurityContextBinder,
    )

T = TypeVar("T")

# SQLSTATE raised by PostgreSQL when a row-level security policy rejects a write
INSUFFICIENT_PRIVILEGE = "42501"

STATUS_CODES: dict[ErrorKind, HTTPStatus] = {
    ErrorKind.UNAUTHENTICATED: HTTPStatus.UNAUTHORIZED,
    ErrorKind.FORBIDDEN: HTTPStatus.FORBIDDEN,
    ErrorKind.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorKind.CONFLICT: HTTPStatus.CONFLICT,
    ErrorKind.CONTEXT_BINDING_FAILURE: HTTPStatus.INTERNAL_SERVER_ERROR,
    ErrorKind.INTERNAL: HTTPStatus.INTERNAL_SERVER_ERROR,
}

PUBLIC_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.UNAUTHENTICATED: UnauthenticatedError.public_message,
    ErrorKind.FORBIDDEN: ForbiddenError.public_message,
    ErrorKind.NOT_FOUND: NotFoundError.public_message,
    ErrorKind.CONFLICT: ConflictError.public_message,
    ErrorKind.CONTEXT_BINDING_FAILURE: ContextBindingFailure.public_message,
    ErrorKind.INTERNAL: SecurityError.public_message,
}

SessionLoader = Callable[[Any], Awaitable[Session | Mapping[str, Any] | None]]


@dataclass
class RequestScope:
    """What a business handler gets for one request.

    Attributes:
        context: The resolved security context.
        user: The session user; carries the role and permission flags.
        session: Database session bound to the context's transaction.
    """

    context: SecurityContext
    user: SessionUser
    session: AsyncSession
    _audit_entries: list[Any] = field(default_factory=list, repr=False)

    def audit(self, entry: Any) -> None:
        """Queue an audit entry, recorded only if the handler succeeds."""
        self._audit_entries.append(entry)


Handler = Callable[[Any, RequestScope], Awaitable[T]]


@dataclass(frozen=True)
class HandlerResult(Generic[T]):
    """Outcome of a wrapped request, independent of any web framework."""

    value: T | None = None
    error: ErrorKind | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status_code(self) -> int:
        if self.error is None:
            return HTTPStatus.OK
        return STATUS_CODES[self.error]

    @classmethod
    def success(cls, value: T) -> HandlerResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind) -> HandlerResult[T]:
        return cls(error=kind, message=PUBLIC_MESSAGES[kind])


def _sqlstate(error: DBAPIError) -> str | None:
    orig = error.orig
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def classify_error(error: BaseException) -> ErrorKind:
    """Map an exception to its stable ErrorKind.

    Anything not recognised is INTERNAL; the caller never sees its details.
    """
    if isinstance(error, SecurityError):
        return error.kind
    if isinstance(error, NoResultFound):
        return ErrorKind.NOT_FOUND
    if isinstance(error, IntegrityError):
        return ErrorKind.CONFLICT
    if isinstance(error, DBAPIError) and _sqlstate(error) == INSUFFICIENT_PRIVILEGE:
        return ErrorKind.FORBIDDEN
    return ErrorKind.INTERNAL


def _request_id(request: Any) -> str:
    headers = getattr(request, "headers", None)
    if headers is not None:
        supplied = headers.get("x-request-id")
        if supplied:
            return supplied
    return str(ULID())


class RequestHandlerWrapper:
    """Orchestrates resolve, bind, handler, classification and unbind."""

    def __init__(
        self,
        resolver: SessionContextResolver,
        binder: SecurityContextBinder,
        session_loader: SessionLoader,
        audit_recorder: AuditRecorder | None = None,
        probe: RequestHandlerProbe | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        """Initialize the wrapper.

        Args:
            resolver: Derives the SecurityContext from the session.
            binder: Applies the context to a transaction for the handler.
            session_loader: Loads the authenticated session for a request.
            audit_recorder: Receives audit entries queued by successful handlers.
            probe: Optional domain probe for observability.
            timeout_seconds: Upper bound for the business handler. Commit and
                release are not subject to it.
        """
        self._resolver = resolver
        self._binder = binder
        self._session_loader = session_loader
        self._audit_recorder = audit_recorder
        self._probe = probe or DefaultRequestHandlerProbe()
        self._timeout = timeout_seconds

    async def handle(self, request: Any, handler: Handler[T]) -> HandlerResult[T]:
        """Run handler for request under the caller's security context.

        Unbinding is guaranteed by the binder on every path before this
        returns. Cancellation is not converted into a result: it propagates
        once the binding has been released.
        """
        request_id = _request_id(request)
        probe = self._probe.with_context(ObservationContext(request_id=request_id))

        try:
            session = coerce_session(await self._session_loader(request))
        except Exception as e:
            probe.session_load_failed(error=e)
            return HandlerResult.failure(ErrorKind.UNAUTHENTICATED)

        try:
            context = self._resolver.resolve(session)
        except UnauthenticatedError:
            probe.request_unauthenticated()
            return HandlerResult.failure(ErrorKind.UNAUTHENTICATED)

        assert session is not None
        probe = probe.with_context(
            ObservationContext(
                request_id=request_id,
                user_id=context.user_id,
                tenant_id=context.tenant_id,
            )
        )

        scope: RequestScope | None = None
        deadline = asyncio.timeout(self._timeout)
        try:
            async with self._binder.bind(context) as binding:
                scope = RequestScope(
                    context=context,
                    user=session.user,
                    session=binding.session,
                )
                # Commit and release run after the deadline scope
                async with deadline:
                    value = await handler(request, scope)
        except Exception as e:
            if isinstance(e, TimeoutError) and deadline.expired():
                probe.request_timed_out(timeout_seconds=self._timeout or 0.0)
            kind = classify_error(e)
            probe.request_failed(kind=kind, error=e)
            return HandlerResult.failure(kind)

        probe.request_completed()
        if scope is not None:
            self._flush_audit(scope)
        return HandlerResult.success(value)

    def _flush_audit(self, scope: RequestScope) -> None:
        if self._audit_recorder is None:
            return
        for entry in scope._audit_entries:
            self._audit_recorder.record_nowait(entry)
