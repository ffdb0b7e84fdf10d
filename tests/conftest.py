"""
Shared fixtures.

Every test gets a fresh broker, so no queue or binding leaks between
tests. Threaded tests wait on state with `wait_until` instead of sleeping.
"""

import pytest

from conference_rent.runtime import wait_until as _wait_until
from conference_rent.transport import BusTopology, InMemoryBroker, MessageBus


@pytest.fixture
def broker():
    broker = InMemoryBroker()
    yield broker
    broker.close()


@pytest.fixture
def topology():
    return BusTopology()


@pytest.fixture
def make_bus(broker, topology):
    """Factory for MessageBus instances on the test broker."""
    buses = []

    def factory(topo=None):
        bus = MessageBus(broker, topo or topology, poll_interval=0.01)
        buses.append(bus)
        return bus

    yield factory
    for bus in buses:
        bus.close()


@pytest.fixture
def wait_until():
    return _wait_until
