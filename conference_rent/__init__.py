"""
Conference Rent
===============

Room reservations coordinated between Customers, Agents and Buildings
that only ever talk through a message bus.

Layers:
    protocol   - typed messages, wire + snapshot codecs, reply correlation
    fsm        - room / reservation state machine
    transport  - in-memory broker and per-actor MessageBus
    agents     - Building, BookingAgent, CustomerSession
    runtime    - config, logging, CLI
"""

from .agents import BookingAgent, Building, CustomerSession
from .exceptions import (
    ConferenceRentError,
    ConfigurationError,
    ProtocolError,
    RequestTimedOut,
    RoomStateError,
    TransportError,
)
from .transport import BusTopology, InMemoryBroker, MessageBus

__version__ = "0.1.0"
__all__ = [
    "BookingAgent",
    "Building",
    "CustomerSession",
    "ConferenceRentError",
    "ConfigurationError",
    "ProtocolError",
    "RequestTimedOut",
    "RoomStateError",
    "TransportError",
    "BusTopology",
    "InMemoryBroker",
    "MessageBus",
]
