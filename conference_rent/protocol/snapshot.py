"""
Building Snapshot Codec
=======================

A snapshot is a Building's room-booking state at one point in time.
Buildings broadcast it, Agents cache it, Customers receive lists of it.

Schema (JSON, room order preserved):

    {"building_id": "ab12cd34",
     "rooms": [{"room_id": "0f1e2d3c", "is_booked": false}, ...]}

Reservations are Building-internal and never appear here.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

from ..exceptions import ProtocolError


@dataclass(frozen=True)
class RoomSnapshot:
    """Externally visible state of one room."""
    room_id: str
    is_booked: bool


@dataclass(frozen=True)
class BuildingSnapshot:
    """
    Immutable projection of a Building.

    Example:
        snap = BuildingSnapshot("b1", (RoomSnapshot("r1", False),))
        assert snap.has_room("r1")
    """
    building_id: str
    rooms: Tuple[RoomSnapshot, ...] = ()

    def has_room(self, room_id: str) -> bool:
        return any(room.room_id == room_id for room in self.rooms)

    def get_room(self, room_id: str) -> Optional[RoomSnapshot]:
        for room in self.rooms:
            if room.room_id == room_id:
                return room
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "building_id": self.building_id,
            "rooms": [
                {"room_id": room.room_id, "is_booked": room.is_booked}
                for room in self.rooms
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuildingSnapshot":
        """Build a snapshot from its dict form. Raises ProtocolError."""
        try:
            rooms = tuple(
                RoomSnapshot(room_id=str(r["room_id"]), is_booked=bool(r["is_booked"]))
                for r in data["rooms"]
            )
            return cls(building_id=str(data["building_id"]), rooms=rooms)
        except (KeyError, TypeError) as e:
            raise ProtocolError(f"Malformed building snapshot: {e!r}") from e

    @classmethod
    def of(cls, building_id: str, rooms: Iterable[Any]) -> "BuildingSnapshot":
        """Project any objects exposing room_id / is_booked."""
        return cls(
            building_id=building_id,
            rooms=tuple(RoomSnapshot(room.room_id, room.is_booked) for room in rooms),
        )


def encode_snapshot(building_id: str, rooms: Iterable[Any]) -> bytes:
    """Serialize a building and its rooms into a broadcast payload."""
    snapshot = BuildingSnapshot.of(building_id, rooms)
    return json.dumps(snapshot.to_dict()).encode("utf-8")


def decode_snapshot(payload: bytes) -> BuildingSnapshot:
    """
    Inverse of encode_snapshot.

    Raises:
        ProtocolError: If the payload is not a valid snapshot
    """
    try:
        data = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ProtocolError(f"Snapshot payload is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise ProtocolError("Snapshot payload must be a JSON object")
    return BuildingSnapshot.from_dict(data)
