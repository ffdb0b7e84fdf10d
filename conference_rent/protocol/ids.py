"""Identifier generation shared by every actor."""

from uuid import uuid4

ID_LENGTH = 8


def generate_id() -> str:
    """Return a short random hex id (8 chars), used as a routing key."""
    return uuid4().hex[:ID_LENGTH]
