"""
Exception hierarchy for the Conference Rent booking system.

Categories:
- Protocol errors (a message could not be understood)
- Transport errors (the bus is unusable, fatal to the actor)
- Request timeouts (a Customer gave up waiting)
- Room state errors (a caller broke the Room contract)
- Configuration errors (caught at startup)

Validation failures (unknown room, room already booked, ...) are NOT
exceptions. They travel back to the requester as INVALID_* outcomes.
"""

from __future__ import annotations

from typing import Optional


class ConferenceRentError(Exception):
    """Base exception for every error raised by this package."""

    def __init__(self, message: str, *, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


class ProtocolError(ConferenceRentError):
    """
    Raised when a payload cannot be decoded or has an unknown type.

    `reply_to` holds the id found in the payload that a reply could be
    addressed to, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        reply_to: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.reply_to = reply_to


class TransportError(ConferenceRentError):
    """Raised when the broker is closed or a destination is missing."""


class RequestTimedOut(ConferenceRentError):
    """Raised when a Customer request gets no reply in time."""

    def __init__(self, message: str, *, request_id: str, timeout: float):
        super().__init__(message, details={"request_id": request_id, "timeout": timeout})
        self.request_id = request_id
        self.timeout = timeout


class RoomStateError(ConferenceRentError):
    """Raised when a Room is booked twice or cancelled while free."""


class ConfigurationError(ConferenceRentError):
    """Raised when a config file holds invalid values."""
