"""
Tests for Transport Layer
=========================
Broker routing semantics and the per-actor MessageBus.
"""

import threading

import pytest

from conference_rent.exceptions import TransportError
from conference_rent.transport import BusTopology, ExchangeType, InMemoryBroker


class TestRouting:
    """Fanout and direct delivery."""

    def test_fanout_reaches_every_queue(self, broker):
        """Fanout copies to every bound queue."""
        broker.declare_exchange("snapshots", ExchangeType.FANOUT)
        for name in ("a1", "a2", "a3"):
            broker.declare_queue(name)
            broker.bind_queue(name, "snapshots")

        assert broker.publish("snapshots", "", b"snap") == 3
        for name in ("a1", "a2", "a3"):
            assert broker.get(name, timeout=1) == b"snap"

    def test_fanout_ignores_routing_key(self, broker):
        """Fanout does not look at the key."""
        broker.declare_exchange("snapshots", ExchangeType.FANOUT)
        broker.declare_queue("a1")
        broker.bind_queue("a1", "snapshots", "whatever")
        assert broker.publish("snapshots", "other", b"x") == 1

    def test_direct_matches_key_exactly(self, broker):
        """Direct delivers only to the matching key."""
        broker.declare_exchange("replies", ExchangeType.DIRECT)
        broker.declare_queue("c1Queue")
        broker.declare_queue("c2Queue")
        broker.bind_queue("c1Queue", "replies", "c1")
        broker.bind_queue("c2Queue", "replies", "c2")

        broker.publish("replies", "c2", b"for c2")
        assert broker.queue_depth("c1Queue") == 0
        assert broker.get("c2Queue", timeout=1) == b"for c2"

    def test_unroutable_is_dropped(self, broker):
        """A message with no matching queue is dropped."""
        broker.declare_exchange("replies", ExchangeType.DIRECT)
        assert broker.publish("replies", "nobody", b"x") == 0

    def test_queue_preserves_order(self, broker):
        """Queues are FIFO."""
        broker.declare_exchange("ex", ExchangeType.DIRECT)
        broker.declare_queue("q")
        broker.bind_queue("q", "ex", "k")
        for i in range(5):
            broker.publish("ex", "k", str(i).encode())
        assert [broker.get("q", timeout=1) for _ in range(5)] == [b"0", b"1", b"2", b"3", b"4"]

    def test_get_times_out_with_none(self, broker):
        """An empty queue yields None after the timeout."""
        broker.declare_queue("q")
        assert broker.get("q", timeout=0.01) is None


class TestDeclarations:
    """Idempotent setup and its failure modes."""

    def test_bind_twice_delivers_once(self, broker):
        """Repeated binds do not duplicate delivery."""
        broker.declare_exchange("ex", ExchangeType.DIRECT)
        broker.declare_queue("q")
        broker.bind_queue("q", "ex", "k")
        broker.bind_queue("q", "ex", "k")
        assert broker.publish("ex", "k", b"x") == 1
        assert broker.is_bound("q", "ex", "k")

    def test_redeclare_queue_keeps_messages(self, broker):
        """Declaring an existing queue keeps its contents."""
        broker.declare_exchange("ex", ExchangeType.FANOUT)
        broker.declare_queue("q")
        broker.bind_queue("q", "ex")
        broker.publish("ex", "", b"kept")
        broker.declare_queue("q")
        assert broker.get("q", timeout=1) == b"kept"

    def test_exchange_kind_conflict(self, broker):
        """An exchange cannot change kind."""
        broker.declare_exchange("ex", ExchangeType.DIRECT)
        broker.declare_exchange("ex", ExchangeType.DIRECT)
        with pytest.raises(TransportError):
            broker.declare_exchange("ex", ExchangeType.FANOUT)

    def test_unknown_exchange(self, broker):
        """Publishing or binding to a missing exchange fails."""
        with pytest.raises(TransportError):
            broker.publish("missing", "", b"x")
        broker.declare_queue("q")
        with pytest.raises(TransportError):
            broker.bind_queue("q", "missing")

    def test_unknown_queue(self, broker):
        """Binding or reading a missing queue fails."""
        broker.declare_exchange("ex", ExchangeType.DIRECT)
        with pytest.raises(TransportError):
            broker.bind_queue("missing", "ex")
        with pytest.raises(TransportError):
            broker.get("missing", timeout=0)

    def test_delete_queue_drops_bindings(self, broker):
        """A deleted queue no longer receives anything."""
        broker.declare_exchange("fan", ExchangeType.FANOUT)
        for name in ("keep", "drop"):
            broker.declare_queue(name)
            broker.bind_queue(name, "fan")
        broker.publish("fan", "", b"before")
        broker.delete_queue("drop")

        assert not broker.is_bound("drop", "fan")
        assert broker.publish("fan", "", b"after") == 1
        assert broker.queue_depth("drop") == 0
        assert broker.queue_depth("keep") == 2

    def test_delete_queue_after_close_is_noop(self):
        """Actors may stop after the broker has gone."""
        broker = InMemoryBroker()
        broker.declare_queue("q")
        broker.close()
        broker.delete_queue("q")

    def test_closed_broker_refuses_everything(self):
        """A closed broker raises TransportError."""
        broker = InMemoryBroker()
        broker.declare_exchange("ex", ExchangeType.DIRECT)
        broker.close()
        assert broker.closed
        with pytest.raises(TransportError):
            broker.publish("ex", "", b"x")
        with pytest.raises(TransportError):
            broker.declare_queue("q")


class TestMessageBus:
    """Per-actor operations over one broker."""

    def test_bind_declares_everything(self, make_bus, broker):
        """bind() creates exchange and queue as needed."""
        bus = make_bus()
        bus.bind("q", "ex", "k")
        assert broker.is_bound("q", "ex", "k")
        assert bus.send_direct("ex", "k", b"x") == 1

    def test_broadcast(self, make_bus, broker):
        """broadcast() reports how many queues got the message."""
        bus = make_bus()
        bus.bind("a1", "fan", kind=ExchangeType.FANOUT)
        bus.bind("a2", "fan", kind=ExchangeType.FANOUT)
        assert bus.broadcast("fan", b"hi") == 2

    def test_subscription_stream(self, make_bus):
        """A subscription yields payloads until closed."""
        bus = make_bus()
        bus.bind("q", "ex", "k")
        bus.send_direct("ex", "k", b"one")
        bus.send_direct("ex", "k", b"two")
        stream = bus.subscribe("q")
        assert next(stream) == b"one"
        assert next(stream) == b"two"
        stream.close()
        with pytest.raises(StopIteration):
            next(stream)

    def test_consume_calls_handler(self, make_bus, wait_until):
        """consume() feeds each payload to the handler."""
        bus = make_bus()
        bus.bind("q", "ex", "k")
        received = []
        bus.consume("q", received.append)
        bus.send_direct("ex", "k", b"a")
        bus.send_direct("ex", "k", b"b")
        assert wait_until(lambda: received == [b"a", b"b"], timeout=2)

    def test_handler_failure_does_not_stop_consumer(self, make_bus, wait_until):
        """A failing handler does not kill the loop."""
        bus = make_bus()
        bus.bind("q", "ex", "k")
        received = []

        def handler(payload):
            if payload == b"boom":
                raise RuntimeError("handler failed")
            received.append(payload)

        consumer = bus.consume("q", handler)
        bus.send_direct("ex", "k", b"boom")
        bus.send_direct("ex", "k", b"ok")
        assert wait_until(lambda: received == [b"ok"], timeout=2)
        assert consumer.is_alive()

    def test_competing_consumers_each_message_once(self, make_bus, wait_until):
        """Two consumers on one queue split the messages between them."""
        bus = make_bus()
        bus.bind("shared", "ex")
        seen = []
        lock = threading.Lock()

        def handler(payload):
            with lock:
                seen.append(payload)

        bus.consume("shared", handler, name="first")
        bus.consume("shared", handler, name="second")
        for i in range(50):
            bus.send_direct("ex", "", str(i).encode())

        assert wait_until(lambda: len(seen) == 50, timeout=3)
        assert sorted(int(p) for p in seen) == list(range(50))

    def test_close_stops_consumers(self, make_bus):
        """Closing the bus ends its consumer threads."""
        bus = make_bus()
        consumer = bus.consume("q", lambda payload: None)
        bus.close()
        consumer.join(timeout=1)
        assert not consumer.is_alive()

    def test_consumer_records_error_when_broker_closes(self, make_bus, broker):
        """A broker closed underneath is recorded on the consumer."""
        bus = make_bus()
        consumer = bus.consume("q", lambda payload: None)
        broker.close()
        consumer.join(timeout=1)
        assert not consumer.is_alive()
        assert consumer.error is not None


class TestTopology:

    def test_default_names(self):
        """Default names match the exchange layout."""
        topo = BusTopology()
        assert topo.snapshot_exchange == "agentBuildFanoutExchange"
        assert topo.customer_request_queue == "custAgentQueue"
        assert topo.inbox_queue("c1") == "c1Queue"

    def test_snapshot_queue_is_per_agent(self):
        """Each Agent gets its own snapshot queue."""
        topo = BusTopology()
        assert topo.snapshot_queue("a1") != topo.snapshot_queue("a2")

    def test_prefixed(self):
        """A prefix applies to every name."""
        topo = BusTopology.prefixed("test_")
        assert topo.building_request_exchange == "test_agentBuildExchange"
        assert topo.customer_request_queue == "test_custAgentQueue"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
