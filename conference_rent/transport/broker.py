"""
In-Memory Broker
================

An AMQP-shaped message broker living inside one process:

- Exchanges route messages, queues hold them
- FANOUT exchanges copy a message to every bound queue
- DIRECT exchanges deliver to queues bound with the exact routing key
- Several consumers reading one queue compete: each message is taken
  by exactly one of them

Every declare/bind call is idempotent, so actors can lazily declare
whatever they need in whatever order they start.

Why in-memory is fine:
1. The protocol only needs publish + subscribe
2. Delivery semantics (fanout vs direct, competing consumers) match a
   real broker
3. Tests run without any external service
"""

import logging
import queue
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Dict, Optional, Set, Tuple

from ..exceptions import TransportError

logger = logging.getLogger(__name__)


class ExchangeType(str, Enum):
    """Routing behaviour of an exchange."""
    FANOUT = "fanout"
    DIRECT = "direct"


@dataclass
class Exchange:
    name: str
    kind: ExchangeType
    bindings: Set[Tuple[str, str]] = field(default_factory=set)  # (routing_key, queue)

    def route(self, routing_key: str) -> Set[str]:
        if self.kind == ExchangeType.FANOUT:
            return {queue_name for _, queue_name in self.bindings}
        return {queue_name for key, queue_name in self.bindings if key == routing_key}


class InMemoryBroker:
    """
    Thread-safe broker shared by every actor of a process.

    Example:
        broker = InMemoryBroker()
        broker.declare_exchange("news", ExchangeType.FANOUT)
        broker.declare_queue("inbox")
        broker.bind_queue("inbox", "news")
        broker.publish("news", "", b"hello")
        assert broker.get("inbox", timeout=1) == b"hello"
    """

    def __init__(self):
        self._exchanges: Dict[str, Exchange] = {}
        self._queues: Dict[str, "queue.Queue[bytes]"] = {}
        self._lock = Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise TransportError("Broker is closed")

    def declare_exchange(self, name: str, kind: ExchangeType) -> None:
        """Create an exchange if missing. Conflicting kinds are an error."""
        kind = ExchangeType(kind)
        with self._lock:
            self._check_open()
            existing = self._exchanges.get(name)
            if existing is None:
                self._exchanges[name] = Exchange(name=name, kind=kind)
                logger.debug(f"Exchange declared: {name} ({kind.value})")
            elif existing.kind != kind:
                raise TransportError(
                    f"Exchange {name} already declared as {existing.kind.value}, not {kind.value}",
                    details={"exchange": name},
                )

    def declare_queue(self, name: str) -> None:
        """Create a queue if missing."""
        with self._lock:
            self._check_open()
            if name not in self._queues:
                self._queues[name] = queue.Queue()
                logger.debug(f"Queue declared: {name}")

    def bind_queue(self, queue_name: str, exchange: str, routing_key: str = "") -> None:
        """Bind a queue to an exchange. Binding twice is a no-op."""
        with self._lock:
            self._check_open()
            if queue_name not in self._queues:
                raise TransportError(f"Unknown queue: {queue_name}")
            if exchange not in self._exchanges:
                raise TransportError(f"Unknown exchange: {exchange}")
            self._exchanges[exchange].bindings.add((routing_key, queue_name))

    def delete_queue(self, queue_name: str) -> None:
        """Drop a queue, its pending messages and every binding to it."""
        with self._lock:
            if self._closed:
                return
            if self._queues.pop(queue_name, None) is not None:
                logger.debug(f"Queue deleted: {queue_name}")
            for ex in self._exchanges.values():
                ex.bindings = {(key, name) for key, name in ex.bindings if name != queue_name}

    def is_bound(self, queue_name: str, exchange: str, routing_key: str = "") -> bool:
        with self._lock:
            ex = self._exchanges.get(exchange)
            return ex is not None and (routing_key, queue_name) in ex.bindings

    def publish(self, exchange: str, routing_key: str, body: bytes) -> int:
        """
        Route a message.

        Returns:
            Number of queues the message landed in. 0 means it was dropped.

        Raises:
            TransportError: If the broker is closed or the exchange is unknown
        """
        with self._lock:
            self._check_open()
            ex = self._exchanges.get(exchange)
            if ex is None:
                raise TransportError(f"Unknown exchange: {exchange}")
            targets = [self._queues[name] for name in ex.route(routing_key)]

        for target in targets:
            target.put(body)
        if not targets:
            logger.debug(f"Unroutable message on {exchange} with key '{routing_key}'")
        return len(targets)

    def get(self, queue_name: str, timeout: Optional[float] = None) -> Optional[bytes]:
        """
        Take the next message from a queue.

        Returns None if nothing arrived within `timeout`.
        """
        with self._lock:
            self._check_open()
            q = self._queues.get(queue_name)
            if q is None:
                raise TransportError(f"Unknown queue: {queue_name}")
        try:
            return q.get(timeout=timeout)
        except queue.Empty:
            return None

    def queue_depth(self, queue_name: str) -> int:
        with self._lock:
            q = self._queues.get(queue_name)
            return q.qsize() if q is not None else 0

    def close(self) -> None:
        """Refuse any further operation. Queued messages are discarded."""
        with self._lock:
            self._closed = True
            self._queues.clear()
            self._exchanges.clear()
