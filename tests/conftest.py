"""
Shared fixtures for the hybrid_state test suite.

The order schema mirrors an e-commerce order workflow: a primary
``status`` lifecycle with ``sub_status`` steps nested in it.
"""

from datetime import datetime, timedelta, timezone

import pytest

from hybrid_state import MemoryStore, SchemaBuilder, StateRecord


ORDER_STATUSES = ["pending", "processing", "shipped", "delivered", "returned"]

ORDER_SUB_STATUSES = [
    "awaiting_payment",
    "fraud_check_passed",
    "fraud_check_failed",
    "ready_to_pack",
    "packing",
    "assigning_carrier",
    "waiting_for_pickup",
    "in_transit",
    "out_for_delivery",
    "inspection",
    "return_processing",
    "return_complete",
]


class FakeClock:
    """Manually advanced clock for metrics tests."""

    def __init__(self, start: datetime = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


def order_builder(reset_micro: bool = True) -> SchemaBuilder:
    """Builder with the order declaration, hooks can still be added."""
    return (
        SchemaBuilder()
        .primary("status", ORDER_STATUSES)
        .micro("sub_status", ORDER_SUB_STATUSES)
        .map("pending", ["awaiting_payment"])
        .map("processing", [
            "fraud_check_passed", "fraud_check_failed", "ready_to_pack", "packing", "assigning_carrier"])
        .map("shipped", ["waiting_for_pickup", "in_transit", "out_for_delivery"])
        .map("returned", ["inspection", "return_processing", "return_complete"])
        .when_primary_changes(reset_micro=reset_micro)
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def builder():
    return order_builder()


@pytest.fixture
def machine(builder, clock):
    return builder.build(clock=clock)


@pytest.fixture
def record_class():
    """Factory creating a StateRecord subclass bound to a machine."""
    def make(machine, name: str = "Order"):
        return type(name, (StateRecord,), {"state_machine": machine})
    return make


@pytest.fixture
def store(machine):
    return MemoryStore(machine)


@pytest.fixture
def make_order(store, machine, record_class):
    """Create and save orders of the default order machine."""
    order_type = record_class(machine)

    def make(**fields):
        fields.setdefault("status", "pending")
        fields.setdefault("paid", False)
        fields.setdefault("sub_status", None)
        return store.create(order_type, **fields)
    return make


def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
