"""In-memory store and record type implementing the entity and query contracts."""

import itertools
import logging
from typing import Any, Dict, Iterator, List, Optional

from ..defaults.exceptions import InvalidStateError, PersistenceError
from ..state.model import HybridStateMixin
from ..state.state_machine import HybridStateMachine
from ..state.state_types import normalize_state, normalize_states


logger = logging.getLogger(__name__)


class StateRecord(HybridStateMixin):
    """
    Attribute-backed entity.

    Subclasses set ``state_machine``; fields are plain attributes. The
    record remembers the state fields of its last save to answer
    ``previous_state``.

    Example:
        >>> class Order(StateRecord):
        ...     state_machine = order_machine
        >>> store = MemoryStore(order_machine)
        >>> order = store.create(Order, status="pending", paid=False)
    """

    def __init__(self, store: Optional["MemoryStore"] = None, **fields: Any):
        self.id: Optional[int] = None
        self._store = store
        self._persisted: Dict[str, Any] = {}
        for name, value in fields.items():
            setattr(self, name, value)

    @property
    def persisted(self) -> bool:
        return self.id is not None

    def read_state(self, field: str) -> Optional[str]:
        return getattr(self, field, None)

    def write_state(self, field: str, value: Optional[str]) -> None:
        setattr(self, field, value)

    def previous_state(self, field: str) -> Optional[str]:
        return self._persisted.get(field)

    def read_metrics(self, field: str) -> Optional[str]:
        return getattr(self, field, None)

    def write_metrics(self, field: str, blob: str) -> None:
        setattr(self, field, blob)

    def persist(self) -> bool:
        if self._store is None:
            raise PersistenceError(f"{self!r} is not attached to a store")
        return self._store.save(self)

    def mark_persisted(self, fields) -> None:
        self._persisted = {name: getattr(self, name, None) for name in fields}

    def __repr__(self) -> str:
        state = ", ".join(f"{k}={v!r}" for k, v in self._persisted.items())
        return f"{type(self).__name__}(id={self.id}, {state})"


class MemoryStore:
    """
    List-backed store for records of one hybrid state type.

    Every save runs the state machine's persistence lifecycle: the record is
    validated, metrics are tracked, and the saved state is remembered.
    """

    def __init__(self, machine: HybridStateMachine):
        self.machine = machine
        self.save_count = 0
        self._records: List[StateRecord] = []
        self._ids = itertools.count(1)

    def create(self, record_type: type = StateRecord, **fields: Any) -> StateRecord:
        """Instantiate, attach and save a record."""
        record = self.attach(record_type(**fields))
        self.save(record)
        return record

    def attach(self, record: StateRecord) -> StateRecord:
        record._store = self
        return record

    def is_valid(self, record: StateRecord) -> bool:
        return self.machine.validate(record).valid

    def save(self, record: StateRecord) -> bool:
        """
        Persist a record.

        Raises:
            InvalidStateError: If the record's state fields violate the schema.
        """
        validation = self.machine.before_persist(record)
        if not validation.valid:
            raise InvalidStateError(
                f"Record is invalid: {', '.join(validation.full_messages())}", validation)

        if record.id is None:
            record.id = next(self._ids)
            self._records.append(record)
            logger.debug(f"Created {record!r}")

        schema = self.machine.schema
        fields = [schema.primary_field, schema.micro_field]
        if schema.metrics_field is not None:
            fields.append(schema.metrics_field)
        record.mark_persisted(fields)

        self.save_count += 1
        return True

    def delete(self, record: StateRecord) -> None:
        self._records.remove(record)
        record.id = None

    # -------------------------------------------------------------------------
    # Query Scopes
    # -------------------------------------------------------------------------

    def all(self) -> List[StateRecord]:
        return list(self._records)

    def in_primary(self, *states: Any) -> List[StateRecord]:
        return self._where(self.machine.schema.primary_field, normalize_states(states))

    def in_micro(self, *states: Any) -> List[StateRecord]:
        return self._where(self.machine.schema.micro_field, normalize_states(states))

    def with_primary_and_micro(self, primary: Any, micro: Any) -> List[StateRecord]:
        micro_states = normalize_states(micro)
        return [r for r in self.in_primary(primary) if self.machine.micro_state(r) in micro_states]

    def without_micro(self) -> List[StateRecord]:
        return [r for r in self._records if self.machine.micro_state(r) is None]

    def with_micro(self) -> List[StateRecord]:
        return [r for r in self._records if self.machine.micro_state(r) is not None]

    def _where(self, field: str, values) -> List[StateRecord]:
        return [r for r in self._records if normalize_state(r.read_state(field)) in values]

    def __iter__(self) -> Iterator[StateRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)
