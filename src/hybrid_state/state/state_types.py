"""
Shared type definitions for the dual-level state machine.

A state token is always handled as a plain string internally. Callers may
pass ``Enum`` members (their ``value`` is used) or any other object that
renders as a meaningful string.
"""

from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple
from dataclasses import dataclass, field
from datetime import datetime, timezone


MICRO_KEY_SEPARATOR = ":"


class HookType(Enum):
    """The four hook classes a schema can register callbacks for."""
    BEFORE_PRIMARY = "before_primary_transition"
    AFTER_PRIMARY = "after_primary_transition"
    BEFORE_MICRO = "before_micro_transition"
    AFTER_MICRO = "after_micro_transition"

    @property
    def is_before(self) -> bool:
        return self in (HookType.BEFORE_PRIMARY, HookType.BEFORE_MICRO)

    @property
    def kind(self) -> str:
        """Axis the hook belongs to, ``"primary"`` or ``"micro"``."""
        if self in (HookType.BEFORE_PRIMARY, HookType.AFTER_PRIMARY):
            return "primary"
        return "micro"


def normalize_state(value: Any) -> Optional[str]:
    """
    Convert a state token into its canonical string form.

    :param value: State token, ``Enum`` member or ``None``.
    :return: The token as string, ``None`` stays ``None``.
    :rtype: Optional[str]
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def normalize_states(values: Any) -> Tuple[str, ...]:
    """
    Normalize one token or an iterable of tokens into an ordered tuple.

    Duplicates are dropped, first occurrence wins.
    """
    if values is None:
        return ()
    if isinstance(values, (str, Enum)) or not isinstance(values, Iterable):
        values = [values]

    result = []
    for value in values:
        token = normalize_state(value)
        if token is not None and token not in result:
            result.append(token)
    return tuple(result)


def micro_key(primary: Any, micro: Any) -> str:
    """Build the composite ``"primary:micro"`` metrics key."""
    return f"{normalize_state(primary)}{MICRO_KEY_SEPARATOR}{normalize_state(micro)}"


@dataclass(frozen=True)
class TransitionEvent:
    """
    Immutable description of a transition, handed to every hook.

    :ivar hook_type: The hook class currently dispatched.
    :ivar target: Target state of the transition.
    :ivar from_primary: Primary state before the transition.
    :ivar from_micro: Micro state before the transition.
    :ivar options: Options the transition was called with.
    :ivar timestamp: Creation time of the event (UTC).
    """
    hook_type: HookType
    target: str
    from_primary: Optional[str] = None
    from_micro: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def kind(self) -> str:
        return self.hook_type.kind

    def with_hook_type(self, hook_type: HookType) -> "TransitionEvent":
        """Return a copy of this event addressed to another hook class."""
        return TransitionEvent(
            hook_type=hook_type,
            target=self.target,
            from_primary=self.from_primary,
            from_micro=self.from_micro,
            options=self.options,
            timestamp=self.timestamp,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hook_type": self.hook_type.value,
            "target": self.target,
            "from_primary": self.from_primary,
            "from_micro": self.from_micro,
            "options": dict(self.options),
            "timestamp": self.timestamp.isoformat(),
        }
