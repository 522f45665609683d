"""
Transition engine of the dual-level state machine.

The engine applies the rules of one ``StateSchema`` and ``HookRegistry`` to
entities that implement the ``HybridStateEntity`` contract. It holds no
per-entity state, so one instance is shared by every entity of a type.

Transition protocol:
- **promote**: change the primary state, apply the micro reset policy.
- **advance**: change the micro state within the current primary state.
- **transition**: combined change of both fields with a single save.
- **reset_micro**: clear the micro state.

There is no internal locking and no rollback. A failing hook or save stops
the remaining steps of the call but leaves already assigned fields in place.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from ..defaults.exceptions import InvalidTransitionError, PersistenceError
from .hooks import HookRegistry
from .metrics import MetricsRecord, MetricsTracker, dump_metrics, load_metrics
from .schema import StateSchema
from .state_types import HookType, TransitionEvent, micro_key, normalize_state
from .validation import StateValidation, validate_entity


logger = logging.getLogger(__name__)


class HybridStateMachine:
    """
    State machine over the pair (primary state, micro state).

    Example:
        >>> machine = (SchemaBuilder()
        ...            .primary("status", ["pending", "processing", "shipped"])
        ...            .micro("sub_status", ["ready_to_pack", "packing"])
        ...            .map("processing", ["ready_to_pack", "packing"])
        ...            .when_primary_changes(reset_micro=True)
        ...            .build())
        >>> machine.promote(order, "processing")
        >>> machine.advance(order, "packing")
        >>> machine.state(order)
        ('processing', 'packing')
    """

    def __init__(
            self,
            schema: StateSchema,
            hooks: Optional[HookRegistry] = None,
            tracker: Optional[MetricsTracker] = None):
        """
        Initialize the state machine.

        Args:
            schema: Immutable state schema.
            hooks: Hook registry. An empty registry is used if None.
            tracker: Metrics tracker, owns the clock used for metrics.
        """
        self.schema = schema
        self.hooks = hooks or HookRegistry()
        self.tracker = tracker or MetricsTracker()

        logger.debug(
            f"HybridStateMachine initialized: {schema.primary_field}={list(schema.primary_states)}, "
            f"{schema.micro_field}={list(schema.micro_states)}, hooks={self.hooks.count()}")

    # -------------------------------------------------------------------------
    # State Query
    # -------------------------------------------------------------------------

    def primary_state(self, entity: Any) -> Optional[str]:
        return normalize_state(entity.read_state(self.schema.primary_field))

    def micro_state(self, entity: Any) -> Optional[str]:
        return normalize_state(entity.read_state(self.schema.micro_field))

    def state(self, entity: Any) -> Tuple[Optional[str], Optional[str]]:
        """Return the current ``(primary, micro)`` pair of an entity."""
        return self.primary_state(entity), self.micro_state(entity)

    def valid_primary_state(self, state: Any) -> bool:
        return self.schema.valid_primary(state)

    def valid_micro_state(self, micro: Any, primary: Any) -> bool:
        return self.schema.valid_micro(micro, primary)

    def can_transition_to_primary(self, entity: Any, new_state: Any) -> bool:
        """
        Check if a promote to ``new_state`` would be accepted.

        This evaluates the before-primary hooks of ``new_state``; hooks with
        side effects perform them here as well.
        """
        new_state = normalize_state(new_state)
        if not self.schema.valid_primary(new_state):
            return False
        return self.hooks.run(entity, self._event(entity, HookType.BEFORE_PRIMARY, new_state))

    def can_transition_to_micro(self, entity: Any, new_micro: Any) -> bool:
        """Check if an advance to ``new_micro`` would be accepted."""
        new_micro = normalize_state(new_micro)
        if new_micro is None:
            return False
        if not self.schema.valid_micro(new_micro, self.primary_state(entity)):
            return False
        return self.hooks.run(entity, self._event(entity, HookType.BEFORE_MICRO, new_micro))

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def promote(self, entity: Any, new_primary: Any, keep_micro: bool = False, skip_save: bool = False) -> Any:
        """
        Transition to a new primary state.

        The micro state is kept only if ``keep_micro`` is requested, auto
        reset is disabled and the old micro state is still valid under the
        new primary state. Otherwise it is cleared.

        Args:
            entity: Entity to transition.
            new_primary: Target primary state.
            keep_micro: Try to keep the current micro state.
            skip_save: Do not persist the entity.

        Returns:
            The entity.

        Raises:
            InvalidTransitionError: If the state is unknown or a hook rejected it.
        """
        return self._promote(entity, new_primary, keep_micro, skip_save, save=not skip_save)

    def _promote(self, entity: Any, new_primary: Any, keep_micro: bool, skip_save: bool, save: bool) -> Any:
        new_primary = normalize_state(new_primary)
        if not self.schema.valid_primary(new_primary):
            logger.warning(f"Rejected promote to unknown primary state '{new_primary}'")
            raise InvalidTransitionError(
                f"Cannot transition to primary state: {new_primary}", state=new_primary, kind="primary")

        old_primary, old_micro = self.state(entity)
        event = self._event(
            entity, HookType.BEFORE_PRIMARY, new_primary, keep_micro=keep_micro, skip_save=skip_save)

        if not self.hooks.run(entity, event):
            raise InvalidTransitionError(
                f"Cannot transition to primary state: {new_primary}",
                state=new_primary, kind="primary", rejected_by_hook=True)

        entity.write_state(self.schema.primary_field, new_primary)

        keep = (
            keep_micro
            and not self.schema.auto_reset_micro
            and self.schema.valid_micro(old_micro, new_primary)
        )
        if old_micro is not None and not keep:
            entity.write_state(self.schema.micro_field, None)
            logger.debug(f"Micro state '{old_micro}' cleared on promote to '{new_primary}'")

        if save:
            self._persist(entity)

        logger.info(f"Primary: {old_primary} -> {new_primary}")

        self.hooks.run(entity, event.with_hook_type(HookType.AFTER_PRIMARY))
        return entity

    def advance(self, entity: Any, new_micro: Any, skip_save: bool = False) -> Any:
        """
        Transition to a new micro state within the current primary state.

        Raises:
            InvalidTransitionError: If the micro state is None, not allowed
                under the current primary state, or rejected by a hook.
        """
        new_micro = normalize_state(new_micro)
        current_primary = self.primary_state(entity)

        if new_micro is None or not self.schema.valid_micro(new_micro, current_primary):
            logger.warning(f"Rejected advance to micro state '{new_micro}' in '{current_primary}'")
            raise InvalidTransitionError(
                f"Cannot transition to micro state: {new_micro}", state=new_micro, kind="micro")

        old_micro = self.micro_state(entity)
        event = self._event(entity, HookType.BEFORE_MICRO, new_micro, skip_save=skip_save)

        if not self.hooks.run(entity, event):
            raise InvalidTransitionError(
                f"Cannot transition to micro state: {new_micro}",
                state=new_micro, kind="micro", rejected_by_hook=True)

        entity.write_state(self.schema.micro_field, new_micro)

        if not skip_save:
            self._persist(entity)

        logger.info(f"Micro ({current_primary}): {old_micro} -> {new_micro}")

        self.hooks.run(entity, event.with_hook_type(HookType.AFTER_MICRO))
        return entity

    def transition(
            self,
            entity: Any,
            primary: Any = None,
            micro: Any = None,
            keep_micro: bool = False,
            skip_save: bool = False) -> Any:
        """
        Change primary and micro state together with at most one save.

        A state that equals the current value is left alone. The micro state
        is checked against the target primary state before anything is
        changed.
        """
        primary = normalize_state(primary)
        micro = normalize_state(micro)
        target_primary = primary if primary is not None else self.primary_state(entity)

        if micro is not None and not self.schema.valid_micro(micro, target_primary):
            raise InvalidTransitionError(
                f"Cannot transition to micro state: {micro}", state=micro, kind="micro")

        promoted = False
        if primary is not None and primary != self.primary_state(entity):
            self._promote(entity, primary, keep_micro, skip_save, save=False)
            promoted = True

        if micro is not None and micro != self.micro_state(entity):
            self.advance(entity, micro, skip_save=skip_save)
        elif promoted and not skip_save:
            self._persist(entity)

        return entity

    def reset_micro(self, entity: Any, skip_save: bool = False) -> Any:
        """Clear the micro state."""
        entity.write_state(self.schema.micro_field, None)
        if not skip_save:
            self._persist(entity)
        return entity

    # -------------------------------------------------------------------------
    # Persistence Lifecycle
    # -------------------------------------------------------------------------

    def validate(self, entity: Any) -> StateValidation:
        """Validate the entity's current state fields."""
        return validate_entity(self.schema, entity)

    def before_persist(self, entity: Any) -> StateValidation:
        """
        Run validation and metrics tracking ahead of a save.

        Stores call this on every persistence attempt. Metrics are only
        written for a valid record whose state fields changed.

        Returns:
            The validation result; the store decides how to reject an
            invalid record.
        """
        validation = self.validate(entity)
        if not validation.valid:
            logger.warning(f"Invalid state on save: {validation.errors}")
            return validation

        if self.schema.tracks_metrics:
            old_primary = normalize_state(entity.previous_state(self.schema.primary_field))
            old_micro = normalize_state(entity.previous_state(self.schema.micro_field))
            new_primary, new_micro = self.state(entity)

            if (old_primary, old_micro) != (new_primary, new_micro):
                metrics = self.metrics(entity)
                if self.tracker.record(metrics, old_primary, old_micro, new_primary, new_micro):
                    entity.write_metrics(self.schema.metrics_field, dump_metrics(metrics))

        return validation

    def _persist(self, entity: Any) -> None:
        if entity.persist() is False:
            raise PersistenceError(f"Could not persist {entity!r}")

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    def metrics(self, entity: Any) -> MetricsRecord:
        """Load the metrics record of an entity, empty if none or unreadable."""
        if not self.schema.tracks_metrics:
            return MetricsRecord()
        return load_metrics(entity.read_metrics(self.schema.metrics_field))

    def time_in_state(self, entity: Any, key: Any) -> float:
        return self.tracker.time_in_state(self.metrics(entity), key)

    def time_in_primary_state(self, entity: Any, state: Any = None) -> float:
        """Accumulated seconds in a primary state, defaults to the current one."""
        state = state if state is not None else self.primary_state(entity)
        return self.tracker.time_in_primary_state(self.metrics(entity), state)

    def time_in_micro_state(self, entity: Any, primary: Any, micro: Any) -> float:
        return self.tracker.time_in_state(self.metrics(entity), micro_key(primary, micro))

    def current_state_duration(self, entity: Any) -> float:
        """Accumulated seconds in the current primary state including the open visit."""
        return self.tracker.current_state_duration(self.metrics(entity), self.primary_state(entity))

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _event(self, entity: Any, hook_type: HookType, target: str, **options: Any) -> TransitionEvent:
        return TransitionEvent(
            hook_type=hook_type,
            target=target,
            from_primary=self.primary_state(entity),
            from_micro=self.micro_state(entity),
            options=options,
        )

    def get_diagnostic_info(self) -> Dict[str, Any]:
        return {
            "schema": self.schema.to_dict(),
            "hooks": {hook_type.value: self.hooks.count(hook_type) for hook_type in HookType},
        }

    def __repr__(self) -> str:
        return (f"HybridStateMachine(primary={self.schema.primary_field}, "
                f"micro={self.schema.micro_field})")
