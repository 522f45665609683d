from .exceptions import (
    HybridStateError,
    SchemaError,
    InvalidTransitionError,
    InvalidStateError,
    MetricsParseError,
    PersistenceError,
)

__all__ = [
    "HybridStateError",
    "SchemaError",
    "InvalidTransitionError",
    "InvalidStateError",
    "MetricsParseError",
    "PersistenceError",
]
