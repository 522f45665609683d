"""
Builder for hybrid state declarations.

A declaration is assembled once per entity type with fluent calls and
turned into an immutable ``HybridStateMachine`` by ``build()``. Declarations
can also be loaded from a mapping or a JSON file; hooks are always
registered in code.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from ..defaults.exceptions import SchemaError
from .hooks import Hook, HookKey, HookRegistry
from .metrics import Clock, MetricsTracker
from .schema import DEFAULT_METRICS_FIELD, StateSchema
from .state_machine import HybridStateMachine
from .state_types import HookType, normalize_state, normalize_states


logger = logging.getLogger(__name__)


class SchemaBuilder:
    """
    Mutable builder for ``StateSchema`` and ``HookRegistry``.

    Example:
        >>> builder = SchemaBuilder()
        >>> builder.primary("status", ["pending", "processing", "shipped"])
        >>> builder.micro("sub_status", ["ready_to_pack", "packing"])
        >>> builder.map("processing", ["ready_to_pack", "packing"])
        >>> builder.when_primary_changes(reset_micro=True)
        >>>
        >>> @builder.before_primary_transition("shipped")
        ... def require_payment(order, event):
        ...     return order.paid
        >>>
        >>> machine = builder.build()
    """

    def __init__(self):
        self._primary_field: Optional[str] = None
        self._primary_states: List[str] = []
        self._micro_field: Optional[str] = None
        self._micro_states: List[str] = []
        self._mappings: Dict[str, List[str]] = {}
        self._auto_reset_micro: bool = False
        self._metrics_field: Optional[str] = DEFAULT_METRICS_FIELD
        self._hooks: Dict[HookKey, List[Hook]] = {}

    # -------------------------------------------------------------------------
    # Declaration
    # -------------------------------------------------------------------------

    def primary(self, field_name: str, states: Any) -> "SchemaBuilder":
        """Declare the primary state field and its ordered states."""
        self._primary_field = str(field_name) if field_name else None
        self._primary_states = list(normalize_states(states))
        return self

    def micro(self, field_name: str, states: Any = ()) -> "SchemaBuilder":
        """Declare the micro state field and its ordered states."""
        self._micro_field = str(field_name) if field_name else None
        self._micro_states = list(normalize_states(states))
        return self

    def map(self, primary_state: Any, micro_states: Any) -> "SchemaBuilder":
        """
        Restrict the micro states allowed under a primary state.

        A later call for the same primary state replaces the earlier one.
        """
        self._mappings[normalize_state(primary_state)] = list(normalize_states(micro_states))
        return self

    def when_primary_changes(self, reset_micro: bool = False) -> "SchemaBuilder":
        """Configure whether every primary change clears the micro state."""
        self._auto_reset_micro = bool(reset_micro)
        return self

    def metrics_field(self, field_name: Optional[str]) -> "SchemaBuilder":
        """Set the entity field for the metrics blob, None disables metrics."""
        self._metrics_field = field_name
        return self

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    def before_primary_transition(self, states: Any, hook: Optional[Hook] = None):
        return self.register_hook(HookType.BEFORE_PRIMARY, states, hook)

    def after_primary_transition(self, states: Any, hook: Optional[Hook] = None):
        return self.register_hook(HookType.AFTER_PRIMARY, states, hook)

    def before_micro_transition(self, states: Any, hook: Optional[Hook] = None):
        return self.register_hook(HookType.BEFORE_MICRO, states, hook)

    def after_micro_transition(self, states: Any, hook: Optional[Hook] = None):
        return self.register_hook(HookType.AFTER_MICRO, states, hook)

    def register_hook(self, hook_type: HookType, states: Any, hook: Optional[Hook] = None):
        """
        Register ``hook`` for one or more target states.

        Without ``hook`` a decorator is returned, so both forms work::

            builder.before_micro_transition("packing", check_stock)

            @builder.before_micro_transition(["packing", "ready_to_pack"])
            def check_stock(order, event): ...

        Returns:
            The builder when a hook was given, otherwise the decorator.
        """
        targets = normalize_states(states)
        if not targets:
            raise SchemaError(f"{hook_type.value} needs at least one target state")

        def decorator(func: Hook) -> Hook:
            if not callable(func):
                raise SchemaError(f"{hook_type.value} hook is not callable: {func!r}")
            for state in targets:
                self._hooks.setdefault((hook_type, state), []).append(func)
            return func

        if hook is None:
            return decorator

        decorator(hook)
        return self

    # -------------------------------------------------------------------------
    # Build
    # -------------------------------------------------------------------------

    def build_schema(self) -> StateSchema:
        """
        Validate the declaration and return the immutable schema.

        Raises:
            SchemaError: If a field or the primary states are missing, or a
                mapping or hook references an undeclared state.
        """
        schema = StateSchema(
            primary_field=self._primary_field,
            micro_field=self._micro_field,
            primary_states=tuple(self._primary_states),
            micro_states=tuple(self._micro_states),
            allowed_micro_by_primary={k: frozenset(v) for k, v in self._mappings.items()},
            auto_reset_micro=self._auto_reset_micro,
            metrics_field=self._metrics_field,
        )

        for hook_type, state in self._hooks:
            declared = schema.primary_states if hook_type.kind == "primary" else schema.micro_states
            if state not in declared:
                raise SchemaError(
                    f"{hook_type.value} hook registered for undeclared {hook_type.kind} state '{state}'")

        return schema

    def build_hooks(self) -> HookRegistry:
        return HookRegistry(self._hooks)

    def build(self, clock: Optional[Clock] = None) -> HybridStateMachine:
        """Build the state machine; the builder can be discarded afterwards."""
        machine = HybridStateMachine(
            self.build_schema(), self.build_hooks(), MetricsTracker(clock))
        logger.info(f"Hybrid state declared: {machine!r}")
        return machine

    # -------------------------------------------------------------------------
    # Declarative Documents
    # -------------------------------------------------------------------------

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "SchemaBuilder":
        """
        Create a builder from a declarative mapping.

        Expected structure::

            {
                "primary": {"field": "status", "states": ["pending", "shipped"]},
                "micro": {"field": "sub_status", "states": ["in_transit"]},
                "map": {"shipped": ["in_transit"]},
                "reset_micro": true,
                "metrics_field": "state_metrics"
            }
        """
        if not isinstance(config, Mapping):
            raise SchemaError("State declaration must be a mapping")

        builder = cls()
        try:
            primary = config["primary"]
            micro = config["micro"]
            builder.primary(primary["field"], primary["states"])
            builder.micro(micro["field"], micro.get("states", []))
        except (KeyError, TypeError, AttributeError) as e:
            raise SchemaError(f"Malformed state declaration, missing {e}") from e

        mappings = config.get("map") or {}
        if not isinstance(mappings, Mapping):
            raise SchemaError("'map' must be a mapping of primary state to micro states")
        for primary_state, micro_states in mappings.items():
            builder.map(primary_state, micro_states)

        builder.when_primary_changes(reset_micro=config.get("reset_micro", False))
        if "metrics_field" in config:
            builder.metrics_field(config["metrics_field"])
        return builder

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "SchemaBuilder":
        """Create a builder from a JSON declaration file."""
        try:
            with Path(path).open(mode="r", encoding="utf-8") as content:
                config = json.load(content)
        except json.JSONDecodeError as e:
            raise SchemaError(f"State declaration {path} is not valid JSON: {e}") from e
        logger.debug(f"Loaded state declaration from {path}")
        return cls.from_config(config)


def declare_hybrid_state(configure: Callable[[SchemaBuilder], Any], clock: Optional[Clock] = None) -> HybridStateMachine:
    """
    Declare a state machine with a configuration function.

    Example:
        >>> def order_states(s):
        ...     s.primary("status", ["pending", "shipped"])
        ...     s.micro("sub_status", ["in_transit"])
        >>> machine = declare_hybrid_state(order_states)
    """
    builder = SchemaBuilder()
    configure(builder)
    return builder.build(clock=clock)
