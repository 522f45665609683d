"""
Immutable state schema of a hybrid state entity type.

The schema declares the primary state set, the micro state set and which
micro states are allowed while a given primary state is active.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from ..defaults.exceptions import SchemaError
from .state_types import normalize_state, normalize_states


DEFAULT_METRICS_FIELD = "state_metrics"


@dataclass(frozen=True)
class StateSchema:
    """
    Declaration of allowed states and their primary/micro compatibility.

    A missing or empty entry in ``allowed_micro_by_primary`` means that the
    primary state does not restrict its micro state.

    :ivar primary_field: Name of the entity field holding the primary state.
    :ivar micro_field: Name of the entity field holding the micro state.
    :ivar primary_states: Ordered primary state tokens, at least one.
    :ivar micro_states: Ordered micro state tokens, may be empty.
    :ivar allowed_micro_by_primary: Primary token -> allowed micro tokens.
    :ivar auto_reset_micro: Clear the micro state on every primary change.
    :ivar metrics_field: Entity field holding the metrics blob, ``None``
        disables metrics tracking.
    """
    primary_field: str
    micro_field: str
    primary_states: Tuple[str, ...]
    micro_states: Tuple[str, ...] = ()
    allowed_micro_by_primary: Mapping[str, FrozenSet[str]] = field(default_factory=dict)
    auto_reset_micro: bool = False
    metrics_field: Optional[str] = DEFAULT_METRICS_FIELD

    def __post_init__(self):
        if not self.primary_field:
            raise SchemaError("Primary state field must be defined")
        if not self.micro_field:
            raise SchemaError("Micro state field must be defined")
        if self.primary_field == self.micro_field:
            raise SchemaError(f"Primary and micro state share the field '{self.primary_field}'")

        primary_states = normalize_states(self.primary_states)
        if not primary_states:
            raise SchemaError("Primary states must be defined")
        micro_states = normalize_states(self.micro_states)

        mapping: Dict[str, FrozenSet[str]] = {}
        for primary, micros in self.allowed_micro_by_primary.items():
            primary = normalize_state(primary)
            if primary not in primary_states:
                raise SchemaError(
                    f"Mapping references undeclared primary state '{primary}'")
            micros = frozenset(normalize_state(m) for m in micros)
            unknown = sorted(micros - set(micro_states))
            if unknown:
                raise SchemaError(
                    f"Mapping for '{primary}' references undeclared micro states: {unknown}")
            mapping[primary] = micros

        # frozen dataclass, normalized values are written once here
        object.__setattr__(self, "primary_states", primary_states)
        object.__setattr__(self, "micro_states", micro_states)
        object.__setattr__(self, "allowed_micro_by_primary", MappingProxyType(mapping))

    def valid_primary(self, state: Any) -> bool:
        """Check if a token is a declared primary state."""
        return normalize_state(state) in self.primary_states

    def valid_micro(self, micro: Any, primary: Any) -> bool:
        """
        Check if a micro state is allowed while ``primary`` is active.

        ``None`` is always a valid micro state.
        """
        micro = normalize_state(micro)
        if micro is None:
            return True
        if micro not in self.micro_states:
            return False

        allowed = self.allowed_micros(primary)
        return allowed is None or micro in allowed

    def allowed_micros(self, primary: Any) -> Optional[FrozenSet[str]]:
        """
        Return the micro states allowed under a primary state.

        Returns:
            The allowed set, or None if the primary state is unrestricted.
        """
        allowed = self.allowed_micro_by_primary.get(normalize_state(primary))
        if not allowed:
            return None
        return allowed

    def is_restricted(self, primary: Any) -> bool:
        return self.allowed_micros(primary) is not None

    @property
    def tracks_metrics(self) -> bool:
        return self.metrics_field is not None

    def to_dict(self) -> Dict[str, Any]:
        """Return the declarative document this schema can be rebuilt from."""
        return {
            "primary": {"field": self.primary_field, "states": list(self.primary_states)},
            "micro": {"field": self.micro_field, "states": list(self.micro_states)},
            "map": {
                primary: [m for m in self.micro_states if m in micros]
                for primary, micros in self.allowed_micro_by_primary.items()
            },
            "reset_micro": self.auto_reset_micro,
            "metrics_field": self.metrics_field,
        }
