"""
Test Suite for shared state type definitions.

Tests token normalization, composite metrics keys and transition events.
"""

from enum import Enum

import pytest

from hybrid_state.state.state_types import (
    HookType,
    TransitionEvent,
    micro_key,
    normalize_state,
    normalize_states,
)


class Status(Enum):
    PENDING = "pending"
    SHIPPED = "shipped"


class TestNormalizeState:
    """Test conversion of state tokens to strings."""

    def test_none_stays_none(self):
        """Test that None is not converted."""
        assert normalize_state(None) is None

    def test_enum_member_uses_value(self):
        """Test that Enum members are reduced to their value."""
        assert normalize_state(Status.SHIPPED) == "shipped"

    def test_plain_objects_are_stringified(self):
        """Test that non-string tokens render as strings."""
        assert normalize_state("packing") == "packing"
        assert normalize_state(3) == "3"

    def test_single_token_is_wrapped(self):
        """Test that a single string is not split into characters."""
        assert normalize_states("shipped") == ("shipped",)
        assert normalize_states(Status.PENDING) == ("pending",)

    def test_duplicates_are_dropped_in_order(self):
        """Test that the first occurrence of a token wins."""
        assert normalize_states(["b", "a", Status.PENDING, "b", "pending"]) == ("b", "a", "pending")

    def test_none_values(self):
        """Test that None yields an empty tuple and None items are skipped."""
        assert normalize_states(None) == ()
        assert normalize_states(["a", None]) == ("a",)


class TestMicroKey:
    """Test composite metrics keys."""

    def test_key_format(self):
        """Test the primary:micro format."""
        assert micro_key("shipped", "in_transit") == "shipped:in_transit"

    def test_key_accepts_enums(self):
        """Test enum tokens in composite keys."""
        assert micro_key(Status.SHIPPED, "in_transit") == "shipped:in_transit"


class TestHookType:
    """Test hook class properties."""

    @pytest.mark.parametrize("hook_type,is_before,kind", [
        (HookType.BEFORE_PRIMARY, True, "primary"),
        (HookType.AFTER_PRIMARY, False, "primary"),
        (HookType.BEFORE_MICRO, True, "micro"),
        (HookType.AFTER_MICRO, False, "micro"),
    ])
    def test_properties(self, hook_type, is_before, kind):
        """Test the before flag and axis of every hook class."""
        assert hook_type.is_before is is_before
        assert hook_type.kind == kind


class TestTransitionEvent:
    """Test TransitionEvent dataclass."""

    def test_event_is_immutable(self):
        """Test that events cannot be modified by hooks."""
        event = TransitionEvent(HookType.BEFORE_PRIMARY, "shipped")
        with pytest.raises(AttributeError):
            event.target = "delivered"

    def test_with_hook_type_keeps_fields(self):
        """Test readdressing an event to the after hooks."""
        event = TransitionEvent(
            HookType.BEFORE_PRIMARY, "shipped", from_primary="processing",
            from_micro="packing", options={"keep_micro": True})
        after = event.with_hook_type(HookType.AFTER_PRIMARY)

        assert after.hook_type == HookType.AFTER_PRIMARY
        assert after.target == "shipped"
        assert after.from_micro == "packing"
        assert after.options == {"keep_micro": True}
        assert after.timestamp == event.timestamp
        assert after.kind == "primary"

    def test_to_dict(self):
        """Test dictionary conversion."""
        event = TransitionEvent(HookType.BEFORE_MICRO, "packing", from_primary="processing")
        data = event.to_dict()

        assert data["hook_type"] == "before_micro_transition"
        assert data["target"] == "packing"
        assert data["from_primary"] == "processing"
        assert data["from_micro"] is None
        assert "timestamp" in data
