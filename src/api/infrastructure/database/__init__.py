"""Database infrastructure: engine, pool hygiene and security-context binding."""

from infrastructure.database.binder import Binding, BindingState, ContextBinder
from infrastructure.database.exceptions import (
    DatabaseConnectionError,
    DatabaseError,
)

__all__ = [
    "Binding",
    "BindingState",
    "ContextBinder",
    "DatabaseConnectionError",
    "DatabaseError",
]
