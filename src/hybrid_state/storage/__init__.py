"""
Storage adapters for hybrid state entities.

- entity: the capability protocols a store implements
- memory: dependency-free record and store
- orm: SQLAlchemy declarative mixin, flush listener and query scopes
"""

from .entity import HybridStateEntity, StateQuery, state_changed
from .memory import MemoryStore, StateRecord
from .tb_base import Base, StateToken
from .orm import HybridStateModel, track_hybrid_state, untrack_hybrid_state

__all__ = [
    "HybridStateEntity",
    "StateQuery",
    "state_changed",
    "MemoryStore",
    "StateRecord",
    "Base",
    "StateToken",
    "HybridStateModel",
    "track_hybrid_state",
    "untrack_hybrid_state",
]
