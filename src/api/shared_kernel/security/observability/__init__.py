"""Observability for the security context layer."""

from shared_kernel.security.observability.security_context_probe import (
    DefaultSecurityContextProbe,
    SecurityContextProbe,
)

__all__ = [
    "DefaultSecurityContextProbe",
    "SecurityContextProbe",
]
