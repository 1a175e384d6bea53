"""Error taxonomy for the security context layer.

Every failure the layer raises carries a stable ErrorKind so the request
handler wrapper can classify it exhaustively. Messages are generic on
purpose: they must not reveal whether a resource exists in another tenant.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Stable, enumerable classification emitted to the calling framework."""

    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    CONTEXT_BINDING_FAILURE = "context_binding_failure"
    INTERNAL = "internal"


class SecurityError(Exception):
    """Base class for classified errors raised around a bound request."""

    kind: ErrorKind = ErrorKind.INTERNAL
    public_message: str = "Internal server error"


class UnauthenticatedError(SecurityError):
    """Raised when no valid session is present.

    Never reaches the business handler and fails before binding.
    """

    kind = ErrorKind.UNAUTHENTICATED
    public_message = "Unauthorized"


class ForbiddenError(SecurityError):
    """Raised when a valid caller fails a role, permission or tenant check."""

    kind = ErrorKind.FORBIDDEN
    public_message = "Forbidden: Access denied"


class NotFoundError(SecurityError):
    """Raised when a resource does not exist within the caller's visible scope.

    Indistinguishable from "exists but belongs to another tenant".
    """

    kind = ErrorKind.NOT_FOUND
    public_message = "Resource not found"


class ConflictError(SecurityError):
    """Raised when a uniqueness or invariant violation is detected."""

    kind = ErrorKind.CONFLICT
    public_message = "Resource already exists"


class ContextBindingFailure(SecurityError):
    """Raised when the security context could not be applied to a connection.

    Fatal for the request: no query runs under a missing binding.
    """

    kind = ErrorKind.CONTEXT_BINDING_FAILURE
    public_message = "Internal server error"
