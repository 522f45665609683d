"""
hybrid_state - dual-level finite state machine for entities.

Public API:

    from hybrid_state import SchemaBuilder, MemoryStore, StateRecord

    machine = (SchemaBuilder()
               .primary("status", ["pending", "processing", "shipped"])
               .micro("sub_status", ["ready_to_pack", "packing"])
               .map("processing", ["ready_to_pack", "packing"])
               .when_primary_changes(reset_micro=True)
               .build())
"""

from .__version__ import __version__
from .defaults.exceptions import (
    HybridStateError,
    SchemaError,
    InvalidTransitionError,
    InvalidStateError,
    MetricsParseError,
    PersistenceError,
)
from .state import (
    HookType,
    TransitionEvent,
    StateSchema,
    SchemaBuilder,
    declare_hybrid_state,
    HookRegistry,
    HookResult,
    REJECT,
    CONTINUE,
    StateValidation,
    StateMetric,
    MetricsRecord,
    MetricsTracker,
    dump_metrics,
    parse_metrics,
    load_metrics,
    HybridStateMachine,
    HybridStateMixin,
)
from .storage import (
    HybridStateEntity,
    StateQuery,
    MemoryStore,
    StateRecord,
)

__all__ = [
    "__version__",
    # Errors
    "HybridStateError",
    "SchemaError",
    "InvalidTransitionError",
    "InvalidStateError",
    "MetricsParseError",
    "PersistenceError",
    # State machine
    "HookType",
    "TransitionEvent",
    "StateSchema",
    "SchemaBuilder",
    "declare_hybrid_state",
    "HookRegistry",
    "HookResult",
    "REJECT",
    "CONTINUE",
    "StateValidation",
    "StateMetric",
    "MetricsRecord",
    "MetricsTracker",
    "dump_metrics",
    "parse_metrics",
    "load_metrics",
    "HybridStateMachine",
    "HybridStateMixin",
    # Storage
    "HybridStateEntity",
    "StateQuery",
    "MemoryStore",
    "StateRecord",
]
