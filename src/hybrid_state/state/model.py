"""
Record-level API for hybrid state entities.

Classes that implement the ``HybridStateEntity`` contract mix this in and
set ``state_machine`` to the machine of their entity type::

    class Order(StateRecord):
        state_machine = order_machine

    order.promote("processing")
    order.advance("packing")
"""

from typing import Any, ClassVar, Optional

from .metrics import MetricsRecord
from .state_machine import HybridStateMachine
from .validation import StateValidation


class HybridStateMixin:
    """Per-entity forwarding of the transition and metrics API."""

    state_machine: ClassVar[HybridStateMachine]

    @property
    def primary_state(self) -> str:
        """Name of the primary state field."""
        return self.state_machine.schema.primary_field

    @property
    def micro_state(self) -> str:
        """Name of the micro state field."""
        return self.state_machine.schema.micro_field

    @property
    def primary_state_value(self) -> Optional[str]:
        return self.state_machine.primary_state(self)

    @property
    def micro_state_value(self) -> Optional[str]:
        return self.state_machine.micro_state(self)

    def valid_primary_state(self, state: Any) -> bool:
        return self.state_machine.valid_primary_state(state)

    def valid_micro_state(self, micro: Any) -> bool:
        """Check ``micro`` against the current primary state."""
        return self.state_machine.valid_micro_state(micro, self.primary_state_value)

    def can_transition_to_primary(self, state: Any) -> bool:
        return self.state_machine.can_transition_to_primary(self, state)

    def can_transition_to_micro(self, micro: Any) -> bool:
        return self.state_machine.can_transition_to_micro(self, micro)

    def promote(self, state: Any, keep_micro: bool = False, skip_save: bool = False):
        return self.state_machine.promote(self, state, keep_micro=keep_micro, skip_save=skip_save)

    def advance(self, micro: Any, skip_save: bool = False):
        return self.state_machine.advance(self, micro, skip_save=skip_save)

    def transition(self, primary: Any = None, micro: Any = None, keep_micro: bool = False, skip_save: bool = False):
        return self.state_machine.transition(
            self, primary=primary, micro=micro, keep_micro=keep_micro, skip_save=skip_save)

    def reset_micro(self, skip_save: bool = False):
        return self.state_machine.reset_micro(self, skip_save=skip_save)

    def validate_state(self) -> StateValidation:
        return self.state_machine.validate(self)

    @property
    def state_metrics_record(self) -> MetricsRecord:
        return self.state_machine.metrics(self)

    def time_in_state(self, key: Any) -> float:
        return self.state_machine.time_in_state(self, key)

    def time_in_primary_state(self, state: Any = None) -> float:
        return self.state_machine.time_in_primary_state(self, state)

    def time_in_micro_state(self, primary: Any, micro: Any) -> float:
        return self.state_machine.time_in_micro_state(self, primary, micro)

    def current_state_duration(self) -> float:
        return self.state_machine.current_state_duration(self)
