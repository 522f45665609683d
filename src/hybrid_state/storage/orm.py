"""
SQLAlchemy adapter for hybrid state entities.

``HybridStateModel`` implements the entity contract on top of a declarative
model and provides the query scopes as ``Select`` statements. The session
listener installed by ``track_hybrid_state`` runs validation and metrics
tracking on every flush, so direct attribute assignment followed by a
commit is held to the same rules as the transition API.

Example:
    >>> class Order(Base, HybridStateModel):
    ...     __tablename__ = "tb_orders"
    ...     state_machine = order_machine
    ...     id: Mapped[int] = mapped_column(primary_key=True)
    ...     status: Mapped[str] = mapped_column(StateToken(), nullable=False, active_history=True)
    ...     sub_status: Mapped[Optional[str]] = mapped_column(StateToken(), active_history=True)
    ...     state_metrics: Mapped[Optional[str]] = mapped_column(Text)
    >>> track_hybrid_state(session)
    >>> session.execute(Order.in_primary("shipped")).scalars().all()
"""

import logging
from typing import Any, Optional

from sqlalchemy import Select, event, inspect, select
from sqlalchemy.orm import Session, object_session

from ..defaults.exceptions import InvalidStateError, PersistenceError
from ..state.model import HybridStateMixin
from ..state.state_types import normalize_state, normalize_states


logger = logging.getLogger(__name__)


class HybridStateModel(HybridStateMixin):
    """Entity contract and query scopes for SQLAlchemy declarative models."""

    def read_state(self, field: str) -> Optional[str]:
        return normalize_state(getattr(self, field))

    def write_state(self, field: str, value: Optional[str]) -> None:
        setattr(self, field, value)

    def previous_state(self, field: str) -> Optional[str]:
        """Value of ``field`` as last flushed, None for unsaved objects."""
        state = inspect(self)
        if state.transient or state.pending:
            return None

        history = state.attrs[field].load_history()
        if history.deleted:
            return normalize_state(history.deleted[0])
        if history.unchanged:
            return normalize_state(history.unchanged[0])
        if history.added:
            logger.warning(
                f"{type(self).__name__}.{field} was changed without its previous value being loaded; "
                f"declare the column with active_history=True")
        return self.read_state(field)

    def read_metrics(self, field: str) -> Optional[str]:
        return getattr(self, field, None)

    def write_metrics(self, field: str, blob: str) -> None:
        setattr(self, field, blob)

    def persist(self) -> bool:
        """Flush the owning session; committing stays with the caller."""
        session = object_session(self)
        if session is None:
            raise PersistenceError(f"{self!r} is not attached to a session")
        session.flush()
        return True

    # -------------------------------------------------------------------------
    # Query Scopes
    # -------------------------------------------------------------------------

    @classmethod
    def _state_column(cls, field: str):
        return getattr(cls, field)

    @classmethod
    def in_primary(cls, *states: Any) -> Select:
        column = cls._state_column(cls.state_machine.schema.primary_field)
        return select(cls).where(column.in_(normalize_states(states)))

    @classmethod
    def in_micro(cls, *states: Any) -> Select:
        column = cls._state_column(cls.state_machine.schema.micro_field)
        return select(cls).where(column.in_(normalize_states(states)))

    @classmethod
    def with_primary_and_micro(cls, primary: Any, micro: Any) -> Select:
        column = cls._state_column(cls.state_machine.schema.micro_field)
        return cls.in_primary(primary).where(column.in_(normalize_states(micro)))

    @classmethod
    def without_micro(cls) -> Select:
        column = cls._state_column(cls.state_machine.schema.micro_field)
        return select(cls).where(column.is_(None))

    @classmethod
    def with_micro(cls) -> Select:
        column = cls._state_column(cls.state_machine.schema.micro_field)
        return select(cls).where(column.is_not(None))


def _before_flush(session: Session, flush_context: Any, instances: Any) -> None:
    for obj in list(session.new) + list(session.dirty):
        if not isinstance(obj, HybridStateModel):
            continue
        if obj not in session.new and not session.is_modified(obj):
            continue

        validation = obj.state_machine.before_persist(obj)
        if not validation.valid:
            raise InvalidStateError(
                f"{type(obj).__name__} is invalid: {', '.join(validation.full_messages())}", validation)


def track_hybrid_state(target: Any = Session) -> None:
    """
    Install the flush listener on a Session class, sessionmaker or session.

    Installing twice on the same target is a no-op.
    """
    if not event.contains(target, "before_flush", _before_flush):
        event.listen(target, "before_flush", _before_flush)
        logger.debug(f"Hybrid state tracking installed on {target!r}")


def untrack_hybrid_state(target: Any = Session) -> None:
    if event.contains(target, "before_flush", _before_flush):
        event.remove(target, "before_flush", _before_flush)
