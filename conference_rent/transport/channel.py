"""
Message Bus
===========

The per-actor view of the broker. Every actor gets its own MessageBus
(sharing one broker) and only ever uses four operations:

- broadcast(exchange, payload)            one-to-all, no ack, no retry
- send_direct(exchange, dest_id, payload) one-to-one by routing key
- bind(queue, exchange, routing_key)      lazy, idempotent destination setup
- subscribe(queue) / consume(queue, fn)   stream of payloads

Consumers run on daemon threads, one per subscribed queue. A handler
that raises is logged and the loop moves on to the next message.
"""

import logging
import threading
from typing import Callable, Iterator, List, Optional

from ..exceptions import TransportError
from .broker import ExchangeType, InMemoryBroker
from .topology import BusTopology

logger = logging.getLogger(__name__)

Handler = Callable[[bytes], None]


class Subscription:
    """
    Unbounded, order-preserving stream of payloads from one queue.

    Iteration ends after close(). If the broker goes away underneath,
    TransportError propagates to the reader.
    """

    def __init__(self, broker: InMemoryBroker, queue_name: str, poll_interval: float = 0.05):
        self.queue_name = queue_name
        self._broker = broker
        self._poll_interval = poll_interval
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        self._closed.set()

    def __iter__(self) -> Iterator[bytes]:
        return self

    def __next__(self) -> bytes:
        while not self._closed.is_set():
            payload = self._broker.get(self.queue_name, timeout=self._poll_interval)
            if payload is not None:
                return payload
        raise StopIteration


class Consumer(threading.Thread):
    """Event loop feeding one subscription into one handler."""

    def __init__(self, subscription: Subscription, handler: Handler, name: Optional[str] = None):
        super().__init__(name=name or f"consumer-{subscription.queue_name}", daemon=True)
        self.subscription = subscription
        self.handler = handler
        self.error: Optional[TransportError] = None

    def run(self) -> None:
        try:
            for payload in self.subscription:
                try:
                    self.handler(payload)
                except Exception:
                    logger.exception(f"Handler on {self.subscription.queue_name} failed")
        except TransportError as e:
            if not self.subscription.closed:
                self.error = e
                logger.error(f"Consumer {self.name} stopped: {e}")

    def stop(self, timeout: Optional[float] = 1.0) -> None:
        self.subscription.close()
        if self.is_alive() and threading.current_thread() is not self:
            self.join(timeout)


class MessageBus:
    """
    One actor's connection to the broker.

    Example:
        bus = MessageBus(broker, BusTopology())
        bus.bind("agent1Queue", bus.topology.building_reply_exchange, "agent1")
        bus.consume("agent1Queue", handle_reply)
        bus.send_direct(bus.topology.building_request_exchange, "b1", payload)
    """

    def __init__(
        self,
        broker: InMemoryBroker,
        topology: Optional[BusTopology] = None,
        poll_interval: float = 0.05,
    ):
        self.broker = broker
        self.topology = topology or BusTopology()
        self.poll_interval = poll_interval
        self._consumers: List[Consumer] = []
        self._lock = threading.Lock()

    def declare_exchange(self, exchange: str, kind: ExchangeType = ExchangeType.DIRECT) -> None:
        self.broker.declare_exchange(exchange, kind)

    def bind(
        self,
        queue_name: str,
        exchange: str,
        routing_key: str = "",
        kind: ExchangeType = ExchangeType.DIRECT,
    ) -> None:
        """Declare exchange and queue, then bind them. Safe to repeat."""
        self.broker.declare_exchange(exchange, kind)
        self.broker.declare_queue(queue_name)
        self.broker.bind_queue(queue_name, exchange, routing_key)

    def delete_queue(self, queue_name: str) -> None:
        """Unbind and drop a queue this actor owns. Call after close()."""
        self.broker.delete_queue(queue_name)

    def broadcast(self, exchange: str, payload: bytes) -> int:
        """Deliver to every queue bound to a fanout exchange."""
        return self.broker.publish(exchange, "", payload)

    def send_direct(self, exchange: str, destination_id: str, payload: bytes) -> int:
        """Deliver to the queue(s) bound with `destination_id` as routing key."""
        return self.broker.publish(exchange, destination_id, payload)

    def subscribe(self, queue_name: str) -> Subscription:
        self.broker.declare_queue(queue_name)
        return Subscription(self.broker, queue_name, self.poll_interval)

    def consume(self, queue_name: str, handler: Handler, name: Optional[str] = None) -> Consumer:
        """Start a consumer thread on a queue."""
        consumer = Consumer(self.subscribe(queue_name), handler, name=name)
        with self._lock:
            self._consumers.append(consumer)
        consumer.start()
        return consumer

    def close(self) -> None:
        """Stop every consumer started through this bus."""
        with self._lock:
            consumers, self._consumers = self._consumers, []
        for consumer in consumers:
            consumer.stop()
