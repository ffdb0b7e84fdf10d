"""
transport - Addressed Message Delivery
======================================

Question this layer answers:
"How does a payload get from one actor to another?"

- InMemoryBroker: exchanges (fanout / direct) and queues
- MessageBus: one actor's broadcast / send_direct / bind / subscribe
- BusTopology: the exchange and queue names, passed to every actor

Transport is intentionally separate from business logic.

Transport does NOT:
- Know message types
- Know rooms or reservations
- Retry or acknowledge anything
"""

from .broker import Exchange, ExchangeType, InMemoryBroker
from .channel import Consumer, MessageBus, Subscription
from .topology import BusTopology

__all__ = [
    "Exchange",
    "ExchangeType",
    "InMemoryBroker",
    "Consumer",
    "MessageBus",
    "Subscription",
    "BusTopology",
]
