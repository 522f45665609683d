"""
Capability interfaces a store has to provide to use the state machine.

The state machine never owns an entity's storage. It reads and writes two
state fields and a metrics blob, asks for the previous field values to learn
what changed, and calls ``persist``.
"""

from typing import Any, Iterable, Optional, Protocol, runtime_checkable


@runtime_checkable
class HybridStateEntity(Protocol):
    """Entity contract used by ``HybridStateMachine``."""

    def read_state(self, field: str) -> Optional[str]:
        """Return the current value of a state field."""
        ...

    def write_state(self, field: str, value: Optional[str]) -> None:
        """Assign a state field without persisting it."""
        ...

    def previous_state(self, field: str) -> Optional[str]:
        """Return the value of a state field as last persisted."""
        ...

    def read_metrics(self, field: str) -> Optional[str]:
        """Return the serialized metrics blob."""
        ...

    def write_metrics(self, field: str, blob: str) -> None:
        """Store the serialized metrics blob without persisting it."""
        ...

    def persist(self) -> Any:
        """
        Persist the entity.

        Exceptions propagate to the caller. A return value of ``False``
        reports a failed write.
        """
        ...


@runtime_checkable
class StateQuery(Protocol):
    """
    Store query contract over the two state fields.

    The return type is store specific (a list, a query object, ...).
    """

    def in_primary(self, *states: Any) -> Any:
        ...

    def in_micro(self, *states: Any) -> Any:
        ...

    def with_primary_and_micro(self, primary: Any, micro: Any) -> Any:
        ...

    def without_micro(self) -> Any:
        ...

    def with_micro(self) -> Any:
        ...


def state_changed(entity: HybridStateEntity, fields: Iterable[str]) -> bool:
    """Check if any of the given state fields differs from its persisted value."""
    return any(entity.read_state(f) != entity.previous_state(f) for f in fields)
