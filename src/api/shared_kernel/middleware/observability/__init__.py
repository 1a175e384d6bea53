"""Observability for shared middleware operations."""

from shared_kernel.middleware.observability.request_handler_probe import (
    DefaultRequestHandlerProbe,
    RequestHandlerProbe,
)

__all__ = [
    "DefaultRequestHandlerProbe",
    "RequestHandlerProbe",
]
