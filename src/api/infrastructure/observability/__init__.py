"""Domain probes for database infrastructure.

Connection pool and context binder events are reported through these
probes rather than by logging calls in the infrastructure code.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from infrastructure.observability.probes import (
    ConnectionProbe,
    ContextBinderProbe,
    DefaultConnectionProbe,
    DefaultContextBinderProbe,
)
from shared_kernel.observability_context import ObservationContext

__all__ = [
    "ConnectionProbe",
    "ContextBinderProbe",
    "DefaultConnectionProbe",
    "DefaultContextBinderProbe",
    "ObservationContext",
]
