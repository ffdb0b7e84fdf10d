"""
Message Schemas for the Booking Protocol

This module defines the structured message types exchanged between
Customers, Agents and Buildings. Every payload on the bus is one of
these types, serialized as a JSON object whose first field is `type`.

The same type token appears on two legs of a request:

    Customer -> Agent:    MAKE_BOOKING customer_id building_id room_id
    Agent -> Building:    MAKE_BOOKING room_id customer_id agent_id

so parsing is done per leg (parse_customer_request, parse_building_request,
parse_reply) rather than by one global lookup.

Every message carries `customer_id` and `request_id`. They are the
correlation token: the Agent and the Building echo them back so a reply
finds its way to the right Customer and the right pending call.
"""

import json
from dataclasses import MISSING, asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from ..exceptions import ProtocolError
from .snapshot import BuildingSnapshot


class RequestType(str, Enum):
    """Request type tokens."""
    GET_BUILDINGS_LIST = "GET_BUILDINGS_LIST"
    MAKE_BOOKING = "MAKE_BOOKING"
    CONFIRM_BOOKING = "CONFIRM_BOOKING"
    CANCEL_BOOKING = "CANCEL_BOOKING"


class OutcomeType(str, Enum):
    """Reply type tokens."""
    BUILDINGS_LIST = "BUILDINGS_LIST"
    BOOKING_MADE = "BOOKING_MADE"
    INVALID_BOOKING_DETAILS = "INVALID_BOOKING_DETAILS"
    BOOKING_CONFIRMED = "BOOKING_CONFIRMED"
    INVALID_CONFIRMATION_DETAILS = "INVALID_CONFIRMATION_DETAILS"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    INVALID_CANCELLATION_DETAILS = "INVALID_CANCELLATION_DETAILS"
    UNRECOGNIZED_REQUEST = "UNRECOGNIZED_REQUEST"


SUCCESS_OUTCOMES = frozenset({
    OutcomeType.BUILDINGS_LIST,
    OutcomeType.BOOKING_MADE,
    OutcomeType.BOOKING_CONFIRMED,
    OutcomeType.BOOKING_CANCELLED,
})


# ============================================================
# CUSTOMER -> AGENT
# ============================================================

@dataclass
class GetBuildingsList:
    """
    Ask an Agent for its cached building snapshots.

    Example:
        msg = GetBuildingsList(customer_id="c1", request_id="q1")
    """
    type: Literal["GET_BUILDINGS_LIST"] = field(default="GET_BUILDINGS_LIST", init=False)
    customer_id: str
    request_id: str


@dataclass
class MakeBooking:
    """Ask for a provisional reservation of a room."""
    type: Literal["MAKE_BOOKING"] = field(default="MAKE_BOOKING", init=False)
    customer_id: str
    building_id: str
    room_id: str
    request_id: str


@dataclass
class ConfirmBooking:
    """Turn a reservation into a booking."""
    type: Literal["CONFIRM_BOOKING"] = field(default="CONFIRM_BOOKING", init=False)
    customer_id: str
    reservation_id: str
    building_id: str
    room_id: str
    request_id: str


@dataclass
class CancelBooking:
    """Release a confirmed booking."""
    type: Literal["CANCEL_BOOKING"] = field(default="CANCEL_BOOKING", init=False)
    customer_id: str
    reservation_id: str
    building_id: str
    room_id: str
    request_id: str


CustomerRequest = Union[GetBuildingsList, MakeBooking, ConfirmBooking, CancelBooking]


# ============================================================
# AGENT -> BUILDING
# ============================================================

@dataclass
class ReserveRoom:
    """MAKE_BOOKING as forwarded by an Agent to the owning Building."""
    type: Literal["MAKE_BOOKING"] = field(default="MAKE_BOOKING", init=False)
    room_id: str
    customer_id: str
    agent_id: str
    request_id: str


@dataclass
class ConfirmReservation:
    """CONFIRM_BOOKING as forwarded by an Agent."""
    type: Literal["CONFIRM_BOOKING"] = field(default="CONFIRM_BOOKING", init=False)
    reservation_id: str
    agent_id: str
    room_id: str
    customer_id: str
    request_id: str


@dataclass
class CancelReservation:
    """CANCEL_BOOKING as forwarded by an Agent."""
    type: Literal["CANCEL_BOOKING"] = field(default="CANCEL_BOOKING", init=False)
    reservation_id: str
    agent_id: str
    room_id: str
    customer_id: str
    request_id: str


BuildingRequest = Union[ReserveRoom, ConfirmReservation, CancelReservation]


# ============================================================
# REPLIES (Building -> Agent -> Customer)
# ============================================================

@dataclass
class Outcome:
    """
    Result of a booking request.

    `text` is a human-readable explanation and is not parsed further.
    `reservation_id` is set on BOOKING_MADE so clients need not scrape it
    out of the text.

    Example:
        outcome = Outcome(
            type="BOOKING_MADE",
            customer_id="c1",
            request_id="q1",
            text="... RESERVATION_ID ab12cd34",
            reservation_id="ab12cd34",
        )
        assert outcome.succeeded
    """
    type: str
    customer_id: str
    request_id: str
    text: str = ""
    reservation_id: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.type, OutcomeType):
            self.type = self.type.value
        if self.type not in OutcomeType.__members__:
            raise ValueError(f"Unknown outcome type: {self.type}")

    @property
    def outcome_type(self) -> OutcomeType:
        return OutcomeType(self.type)

    @property
    def succeeded(self) -> bool:
        return self.outcome_type in SUCCESS_OUTCOMES

    def __str__(self) -> str:
        return f"{self.type} {self.text}".rstrip()


@dataclass
class BuildingsList:
    """An Agent's reply to GET_BUILDINGS_LIST, served from its cache."""
    type: Literal["BUILDINGS_LIST"] = field(default="BUILDINGS_LIST", init=False)
    customer_id: str
    request_id: str
    buildings: List[BuildingSnapshot] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return True


Reply = Union[Outcome, BuildingsList]
Message = Union[CustomerRequest, BuildingRequest, Reply]

_CUSTOMER_REQUESTS = {
    RequestType.GET_BUILDINGS_LIST.value: GetBuildingsList,
    RequestType.MAKE_BOOKING.value: MakeBooking,
    RequestType.CONFIRM_BOOKING.value: ConfirmBooking,
    RequestType.CANCEL_BOOKING.value: CancelBooking,
}

_BUILDING_REQUESTS = {
    RequestType.MAKE_BOOKING.value: ReserveRoom,
    RequestType.CONFIRM_BOOKING.value: ConfirmReservation,
    RequestType.CANCEL_BOOKING.value: CancelReservation,
}


# ============================================================
# MESSAGE PARSING - Convert dicts to typed messages
# ============================================================

def _reply_address(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    return value if isinstance(value, str) else None


def _build(cls, data: Dict[str, Any], reply_to: Optional[str]):
    kwargs = {}
    for f in fields(cls):
        if not f.init:
            continue
        if f.name not in data:
            if f.default is MISSING and f.default_factory is MISSING:
                raise ProtocolError(
                    f"{data.get('type')} message is missing field '{f.name}'",
                    reply_to=reply_to,
                    details={"payload": data},
                )
            continue
        # Ids are used as dict keys and routing keys
        if f.type is str and not isinstance(data[f.name], str):
            raise ProtocolError(
                f"{data.get('type')} field '{f.name}' must be a string",
                reply_to=reply_to,
                details={"payload": data},
            )
        kwargs[f.name] = data[f.name]
    return cls(**kwargs)


def parse_customer_request(data: Dict[str, Any]) -> CustomerRequest:
    """
    Parse a dict received on the shared Customer inbox.

    Raises:
        ProtocolError: If the type is unknown, or a field is missing or
            not a string.
            `reply_to` is the customer id when the payload has one.

    Example:
        msg = parse_customer_request(
            {"type": "GET_BUILDINGS_LIST", "customer_id": "c1", "request_id": "q1"}
        )
        assert isinstance(msg, GetBuildingsList)
    """
    reply_to = _reply_address(data, "customer_id")
    cls = _CUSTOMER_REQUESTS.get(data.get("type"))
    if cls is None:
        raise ProtocolError(
            f"Unknown request type: {data.get('type')}",
            reply_to=reply_to,
            details={"payload": data},
        )
    return _build(cls, data, reply_to)


def parse_building_request(data: Dict[str, Any]) -> BuildingRequest:
    """Parse a dict received on a Building's inbox. `reply_to` is the agent id."""
    reply_to = _reply_address(data, "agent_id")
    cls = _BUILDING_REQUESTS.get(data.get("type"))
    if cls is None:
        raise ProtocolError(
            f"Unknown request type: {data.get('type')}",
            reply_to=reply_to,
            details={"payload": data},
        )
    return _build(cls, data, reply_to)


def parse_reply(data: Dict[str, Any]) -> Reply:
    """Parse a dict received on an Agent or Customer reply inbox."""
    msg_type = data.get("type")
    if msg_type == OutcomeType.BUILDINGS_LIST.value:
        buildings = [BuildingSnapshot.from_dict(b) for b in data.get("buildings", [])]
        return BuildingsList(
            customer_id=data.get("customer_id", ""),
            request_id=data.get("request_id", ""),
            buildings=buildings,
        )
    if msg_type in OutcomeType.__members__:
        return _build(Outcome, data, None)
    raise ProtocolError(f"Unknown reply type: {msg_type}")


def to_dict(msg: Message) -> Dict[str, Any]:
    """
    Convert a typed message to a dictionary, `type` first.

    Example:
        d = to_dict(GetBuildingsList(customer_id="c1", request_id="q1"))
        assert list(d) == ["type", "customer_id", "request_id"]
    """
    if isinstance(msg, BuildingsList):
        return {
            "type": msg.type,
            "customer_id": msg.customer_id,
            "request_id": msg.request_id,
            "buildings": [b.to_dict() for b in msg.buildings],
        }
    if isinstance(msg, (
        GetBuildingsList, MakeBooking, ConfirmBooking, CancelBooking,
        ReserveRoom, ConfirmReservation, CancelReservation, Outcome,
    )):
        return asdict(msg)
    raise ValueError(f"Unknown message type: {type(msg)}")


# ============================================================
# WIRE CODEC
# ============================================================

def encode(msg: Message) -> bytes:
    """Serialize a message into a bus payload."""
    return json.dumps(to_dict(msg)).encode("utf-8")


def decode(payload: bytes) -> Dict[str, Any]:
    """
    Decode a bus payload into a dict with a string `type`.

    Raises:
        ProtocolError: If the payload is not a JSON object with a type
    """
    try:
        data = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ProtocolError(f"Payload is not JSON: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        raise ProtocolError("Payload must be a JSON object with a 'type' field")
    return data
