"""
Test Suite for the hook registry.

Tests dispatch order, rejection and error propagation.
"""

import pytest

from hybrid_state import CONTINUE, REJECT, HookRegistry, HookResult
from hybrid_state.state.hooks import is_rejection
from hybrid_state.state.state_types import HookType, TransitionEvent


def make_event(hook_type=HookType.BEFORE_PRIMARY, target="shipped"):
    return TransitionEvent(hook_type, target, from_primary="processing")


class TestIsRejection:
    """Test interpretation of hook return values."""

    @pytest.mark.parametrize("result", [False, REJECT, HookResult.REJECT])
    def test_rejections(self, result):
        """Test values that reject a transition."""
        assert is_rejection(result)

    @pytest.mark.parametrize("result", [True, None, CONTINUE, 0, "", [], "reject"])
    def test_non_rejections(self, result):
        """Test that only False and REJECT reject."""
        assert not is_rejection(result)


class TestHookRegistry:
    """Test HookRegistry dispatch."""

    def test_empty_registry(self):
        """Test that an empty registry accepts every transition."""
        registry = HookRegistry()
        assert len(registry) == 0
        assert registry.run(object(), make_event()) is True

    def test_hooks_run_in_registration_order(self):
        """Test dispatch order and hook arguments."""
        calls = []
        entity = object()
        registry = HookRegistry({
            (HookType.BEFORE_PRIMARY, "shipped"): [
                lambda e, ev: calls.append(("first", e, ev.target)),
                lambda e, ev: calls.append(("second", e, ev.target)),
            ],
        })

        assert registry.run(entity, make_event()) is True
        assert calls == [("first", entity, "shipped"), ("second", entity, "shipped")]

    def test_only_matching_hooks_run(self):
        """Test that hooks are keyed by hook class and target."""
        calls = []
        registry = HookRegistry({
            (HookType.BEFORE_PRIMARY, "shipped"): [lambda e, ev: calls.append("before_shipped")],
            (HookType.AFTER_PRIMARY, "shipped"): [lambda e, ev: calls.append("after_shipped")],
            (HookType.BEFORE_PRIMARY, "delivered"): [lambda e, ev: calls.append("before_delivered")],
        })

        registry.run(object(), make_event(HookType.AFTER_PRIMARY))
        assert calls == ["after_shipped"]

    def test_before_hook_rejection_stops_dispatch(self):
        """Test that the first rejecting before-hook ends the run."""
        calls = []
        registry = HookRegistry({
            (HookType.BEFORE_PRIMARY, "shipped"): [
                lambda e, ev: calls.append("first"),
                lambda e, ev: REJECT,
                lambda e, ev: calls.append("third"),
            ],
        })

        assert registry.run(object(), make_event()) is False
        assert calls == ["first"]

    def test_false_rejects(self):
        """Test that a literal False rejects."""
        registry = HookRegistry({(HookType.BEFORE_MICRO, "packing"): [lambda e, ev: False]})
        assert registry.run(object(), make_event(HookType.BEFORE_MICRO, "packing")) is False

    def test_after_hooks_cannot_reject(self):
        """Test that after-hook return values are ignored."""
        calls = []
        registry = HookRegistry({
            (HookType.AFTER_MICRO, "packing"): [
                lambda e, ev: False,
                lambda e, ev: calls.append("second"),
            ],
        })

        assert registry.run(object(), make_event(HookType.AFTER_MICRO, "packing")) is True
        assert calls == ["second"]

    def test_hook_exception_propagates(self):
        """Test that exceptions raised by hooks are not swallowed."""
        def explode(entity, event):
            raise RuntimeError("carrier API down")

        registry = HookRegistry({(HookType.BEFORE_PRIMARY, "shipped"): [explode]})
        with pytest.raises(RuntimeError, match="carrier API down"):
            registry.run(object(), make_event())

    def test_not_callable(self):
        """Test that registries refuse non-callables."""
        with pytest.raises(TypeError):
            HookRegistry({(HookType.BEFORE_PRIMARY, "shipped"): ["nope"]})

    def test_registry_is_read_only(self):
        """Test that the dispatch table cannot be changed."""
        source = {(HookType.BEFORE_PRIMARY, "shipped"): [lambda e, ev: None]}
        registry = HookRegistry(source)
        source[(HookType.BEFORE_PRIMARY, "shipped")].append(lambda e, ev: False)

        assert len(registry.get(HookType.BEFORE_PRIMARY, "shipped")) == 1
        assert registry.run(object(), make_event()) is True

    def test_counts_and_states(self):
        """Test registry introspection."""
        hook = lambda e, ev: None  # noqa: E731
        registry = HookRegistry({
            (HookType.BEFORE_PRIMARY, "shipped"): [hook, hook],
            (HookType.BEFORE_PRIMARY, "delivered"): [hook],
            (HookType.AFTER_MICRO, "packing"): [hook],
        })

        assert registry.count() == 4
        assert registry.count(HookType.BEFORE_PRIMARY) == 3
        assert sorted(registry.states(HookType.BEFORE_PRIMARY)) == ["delivered", "shipped"]
        assert registry.get(HookType.BEFORE_MICRO, "packing") == ()
