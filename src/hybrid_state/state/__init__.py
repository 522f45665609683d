"""
Dual-level State Machine

Tracks two coupled state axes of an entity:
- Primary state: coarse lifecycle stage (pending, processing, shipped, ...)
- Micro state: fine-grained step nested in the current primary state

Components:
- StateSchema / SchemaBuilder: immutable declaration of states and the
  allowed micro states per primary state
- HookRegistry: before/after hooks per target state
- Validation: pure checks of primary/micro pairs
- HybridStateMachine: promote, advance, transition and reset_micro
- MetricsTracker: per-state entry/exit times and accumulated durations
"""

from .state_types import (
    HookType,
    TransitionEvent,
    micro_key,
    normalize_state,
    normalize_states,
)
from .schema import StateSchema
from .hooks import HookRegistry, HookResult, REJECT, CONTINUE, is_rejection
from .validation import (
    StateValidation,
    is_valid_primary,
    is_valid_micro,
    validate_states,
    validate_entity,
)
from .metrics import (
    StateMetric,
    MetricsRecord,
    MetricsTracker,
    dump_metrics,
    parse_metrics,
    load_metrics,
)
from .state_machine import HybridStateMachine
from .builder import SchemaBuilder, declare_hybrid_state
from .model import HybridStateMixin


__all__ = [
    # Types
    "HookType",
    "TransitionEvent",
    "micro_key",
    "normalize_state",
    "normalize_states",
    # Schema
    "StateSchema",
    "SchemaBuilder",
    "declare_hybrid_state",
    # Hooks
    "HookRegistry",
    "HookResult",
    "REJECT",
    "CONTINUE",
    "is_rejection",
    # Validation
    "StateValidation",
    "is_valid_primary",
    "is_valid_micro",
    "validate_states",
    "validate_entity",
    # Metrics
    "StateMetric",
    "MetricsRecord",
    "MetricsTracker",
    "dump_metrics",
    "parse_metrics",
    "load_metrics",
    # Engine
    "HybridStateMachine",
    "HybridStateMixin",
]
