"""
protocol - Structured Communication
===================================

Question this layer answers:
"What do the actors say to each other?"

- Typed request/reply messages and their JSON wire codec
- The Building snapshot codec
- Short generated ids
- PendingReply, the once-resolved promise a Customer blocks on

This layer does NOT:
- Deliver messages (that's transport)
- Decide whether a booking is allowed (that's fsm)
"""

from .correlation import PendingReply
from .ids import generate_id
from .messages import (
    SUCCESS_OUTCOMES,
    BuildingRequest,
    BuildingsList,
    CancelBooking,
    CancelReservation,
    ConfirmBooking,
    ConfirmReservation,
    CustomerRequest,
    GetBuildingsList,
    MakeBooking,
    Outcome,
    OutcomeType,
    Reply,
    RequestType,
    ReserveRoom,
    decode,
    encode,
    parse_building_request,
    parse_customer_request,
    parse_reply,
    to_dict,
)
from .snapshot import BuildingSnapshot, RoomSnapshot, decode_snapshot, encode_snapshot

__all__ = [
    "PendingReply",
    "generate_id",
    "SUCCESS_OUTCOMES",
    "BuildingRequest",
    "BuildingsList",
    "CancelBooking",
    "CancelReservation",
    "ConfirmBooking",
    "ConfirmReservation",
    "CustomerRequest",
    "GetBuildingsList",
    "MakeBooking",
    "Outcome",
    "OutcomeType",
    "Reply",
    "RequestType",
    "ReserveRoom",
    "decode",
    "encode",
    "parse_building_request",
    "parse_customer_request",
    "parse_reply",
    "to_dict",
    "BuildingSnapshot",
    "RoomSnapshot",
    "decode_snapshot",
    "encode_snapshot",
]
