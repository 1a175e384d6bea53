"""Domain probe for the request handler wrapper.

Captures the outcome of every wrapped request: refused before binding,
completed, or failed with a classified error kind.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class RequestHandlerProbe(Protocol):
    """Domain probe for wrapped request handling."""

    def request_unauthenticated(self) -> None:
        """Record that a request was refused for lack of a session."""
        ...

    def session_load_failed(self, error: Exception) -> None:
        """Record that the session could not be loaded for a request."""
        ...

    def request_completed(self) -> None:
        """Record that the business handler completed successfully."""
        ...

    def request_failed(self, kind: str, error: BaseException) -> None:
        """Record that a request failed with a classified error."""
        ...

    def request_timed_out(self, timeout_seconds: float) -> None:
        """Record that the bound unit of work exceeded its time budget."""
        ...

    def with_context(self, context: ObservationContext) -> RequestHandlerProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultRequestHandlerProbe:
    """Default implementation of RequestHandlerProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _event_kwargs(self, **fields: Any) -> dict[str, Any]:
        """Merge context metadata with event fields (event fields win)."""
        if self._context is None:
            return fields
        return {**self._context.as_dict(), **fields}

    def with_context(self, context: ObservationContext) -> DefaultRequestHandlerProbe:
        """Create a new probe with observation context bound."""
        return DefaultRequestHandlerProbe(logger=self._logger, context=context)

    def request_unauthenticated(self) -> None:
        self._logger.info(
            "request_unauthenticated",
            **self._event_kwargs(),
        )

    def session_load_failed(self, error: Exception) -> None:
        self._logger.warning(
            "request_session_load_failed",
            **self._event_kwargs(error=str(error), error_type=type(error).__name__),
        )

    def request_completed(self) -> None:
        self._logger.debug(
            "request_completed",
            **self._event_kwargs(),
        )

    def request_failed(self, kind: str, error: BaseException) -> None:
        # Unclassified errors are unexpected and get the full traceback
        log = self._logger.error if kind == "internal" else self._logger.info
        log(
            "request_failed",
            **self._event_kwargs(
                kind=str(kind),
                error=str(error),
                error_type=type(error).__name__,
                exc_info=error if kind == "internal" else False,
            ),
        )

    def request_timed_out(self, timeout_seconds: float) -> None:
        self._logger.warning(
            "request_timed_out",
            **self._event_kwargs(timeout_seconds=timeout_seconds),
        )
