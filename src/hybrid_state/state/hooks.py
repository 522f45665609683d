"""
Hook registry for primary and micro transitions.

Hooks are plain callables ``hook(entity, event)`` stored in a dispatch table
keyed by ``(HookType, target_state)``. A before-hook rejects a transition by
returning ``REJECT`` (or ``False``); every other return value lets the
transition continue. Exceptions raised by hooks are never caught here.
"""

import logging
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .state_types import HookType, TransitionEvent, normalize_state


logger = logging.getLogger(__name__)


Hook = Callable[[Any, TransitionEvent], Any]
HookKey = Tuple[HookType, str]


class HookResult(Enum):
    """Explicit results a hook may return."""
    CONTINUE = "continue"
    REJECT = "reject"


REJECT = HookResult.REJECT
CONTINUE = HookResult.CONTINUE


def is_rejection(result: Any) -> bool:
    """Check if a hook return value signals rejection."""
    return result is False or result is HookResult.REJECT


class HookRegistry:
    """
    Immutable dispatch table of transition hooks.

    Built once from a mapping of ``(HookType, state) -> [hooks]``; the hook
    order of each list is the execution order.

    Example:
        >>> registry = HookRegistry({(HookType.BEFORE_PRIMARY, "shipped"): [check_paid]})
        >>> registry.get(HookType.BEFORE_PRIMARY, "shipped")
        (<function check_paid ...>,)
    """

    def __init__(self, hooks: Optional[Mapping[HookKey, Iterable[Hook]]] = None):
        table: Dict[HookKey, Tuple[Hook, ...]] = {}
        for (hook_type, state), callbacks in (hooks or {}).items():
            callbacks = tuple(callbacks)
            for callback in callbacks:
                if not callable(callback):
                    raise TypeError(f"Hook for {hook_type.value}[{state}] is not callable: {callback!r}")
            if callbacks:
                table[(hook_type, normalize_state(state))] = callbacks
        self._hooks: Mapping[HookKey, Tuple[Hook, ...]] = MappingProxyType(table)

    def get(self, hook_type: HookType, state: Any) -> Tuple[Hook, ...]:
        """Return the hooks registered for a target state, in order."""
        return self._hooks.get((hook_type, normalize_state(state)), ())

    def states(self, hook_type: HookType) -> List[str]:
        """List all target states that have hooks of the given class."""
        return [state for (kind, state) in self._hooks if kind == hook_type]

    def count(self, hook_type: Optional[HookType] = None) -> int:
        return sum(
            len(callbacks) for (kind, _), callbacks in self._hooks.items()
            if hook_type is None or kind == hook_type
        )

    def run(self, entity: Any, event: TransitionEvent) -> bool:
        """
        Dispatch all hooks for the event's hook class and target.

        Before-hooks stop at the first rejection, after-hooks always run to
        completion because their transition is already committed.

        Args:
            entity: The entity undergoing the transition.
            event: Transition description, passed to every hook.

        Returns:
            False if a before-hook rejected the transition, True otherwise.
        """
        callbacks = self.get(event.hook_type, event.target)
        for callback in callbacks:
            logger.debug(f"Running {event.hook_type.value} hook {_hook_name(callback)} for '{event.target}'")
            result = callback(entity, event)
            if event.hook_type.is_before and is_rejection(result):
                logger.info(
                    f"Hook {_hook_name(callback)} rejected {event.kind} transition to '{event.target}'")
                return False
        return True

    def __len__(self) -> int:
        return self.count()

    def __repr__(self) -> str:
        return f"HookRegistry({self.count()} hooks)"


def _hook_name(callback: Hook) -> str:
    return getattr(callback, "__qualname__", repr(callback))
