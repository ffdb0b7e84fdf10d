"""
Room Booking State Machine
==========================

Enforces the booking lifecycle inside one Building.

State Diagram (per room):

    ┌─────────┐   reserve()    ┌─────────┐   confirm()   ┌─────────┐
    │  FREE   │ ─────────────► │ PENDING │ ────────────► │ BOOKED  │
    └─────────┘                └─────────┘               └─────────┘
         ▲                                                    │
         └──────────────────────── cancel() ──────────────────┘

Externally only `is_booked` is visible: PENDING rooms still report
is_booked=False. PENDING is a room with a live (unconfirmed) Reservation.

SAFETY GUARANTEE:
- reserve() refuses a room that already has a live Reservation
- the Building calls this FSM from one thread at a time
- Therefore: no two reservations of one room can both succeed

Rejections are not exceptions. Every operation returns a
TransitionResult carrying the outcome type and a human explanation.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Dict, Iterable, List, Optional

from ..exceptions import RoomStateError
from ..protocol.ids import generate_id
from ..protocol.messages import OutcomeType


class RoomState(Enum):
    """The finite set of states a room can be in."""
    FREE = auto()
    PENDING = auto()
    BOOKED = auto()


class Room:
    """
    A bookable room. Owned by exactly one Building.

    book() and cancel_booking() are contract-checked: callers must look
    at is_booked first.
    """

    def __init__(self, room_id: Optional[str] = None, is_booked: bool = False):
        self.room_id = room_id or generate_id()
        self.is_booked = is_booked

    def book(self) -> None:
        if self.is_booked:
            raise RoomStateError(f"Room {self.room_id} is already booked")
        self.is_booked = True

    def cancel_booking(self) -> None:
        if not self.is_booked:
            raise RoomStateError(f"Room {self.room_id} is not booked")
        self.is_booked = False

    def __repr__(self) -> str:
        return f"Room(room_id={self.room_id!r}, is_booked={self.is_booked})"


@dataclass
class Reservation:
    """
    A booking claim on a room.

    Unconfirmed reservations are PENDING claims. A confirmed one stays
    around so the booking can later be cancelled by its id.
    """
    reservation_id: str
    customer_id: str
    room_id: str
    originating_agent_id: str
    confirmed: bool = False


@dataclass
class TransitionResult:
    """Result of a state machine operation."""
    accepted: bool
    outcome: OutcomeType
    reason: str
    reservation_id: Optional[str] = None
    state_changed: bool = False


class RoomBookingFSM:
    """
    Reservation state machine for all rooms of one Building.

    Not thread-safe on its own; the owning Building serializes calls.

    Example:
        fsm = RoomBookingFSM([Room("r1")])
        made = fsm.reserve("r1", customer_id="c1", agent_id="a1")
        fsm.confirm(made.reservation_id, "r1")
        assert fsm.room_state("r1") == RoomState.BOOKED
    """

    # Valid transitions
    TRANSITIONS = {
        RoomState.FREE: {RoomState.PENDING},
        RoomState.PENDING: {RoomState.BOOKED},
        RoomState.BOOKED: {RoomState.FREE},
    }

    def __init__(
        self,
        rooms: Iterable[Room],
        id_factory: Callable[[], str] = generate_id,
    ):
        self._rooms: Dict[str, Room] = {}
        for room in rooms:
            self._rooms[room.room_id] = room
        self._reservations: Dict[str, Reservation] = {}
        self._new_id = id_factory

    @property
    def rooms(self) -> List[Room]:
        """Rooms in creation order."""
        return list(self._rooms.values())

    @property
    def reservations(self) -> List[Reservation]:
        return list(self._reservations.values())

    def get_room(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def get_reservation(self, reservation_id: str) -> Optional[Reservation]:
        return self._reservations.get(reservation_id)

    def live_reservation_for(self, room_id: str) -> Optional[Reservation]:
        """The unconfirmed reservation holding this room, if any."""
        for reservation in self._reservations.values():
            if reservation.room_id == room_id and not reservation.confirmed:
                return reservation
        return None

    def room_state(self, room_id: str) -> RoomState:
        room = self._rooms[room_id]
        if room.is_booked:
            return RoomState.BOOKED
        if self.live_reservation_for(room_id) is not None:
            return RoomState.PENDING
        return RoomState.FREE

    def can_transition(self, room_id: str, to_state: RoomState) -> bool:
        return to_state in self.TRANSITIONS[self.room_state(room_id)]

    # ------------------------------------------------------------------
    # MAKE_BOOKING
    # ------------------------------------------------------------------

    def reserve(self, room_id: str, customer_id: str, agent_id: str) -> TransitionResult:
        """
        FREE -> PENDING.

        Checks, in order: room exists, room has no live reservation,
        room is not booked.
        """
        rejected = OutcomeType.INVALID_BOOKING_DETAILS
        prefix = f"can't book a room with ID: {room_id}"

        if room_id not in self._rooms:
            return TransitionResult(False, rejected, f"{prefix}, it does not exist")
        if self.live_reservation_for(room_id) is not None:
            return TransitionResult(
                False, rejected, f"{prefix}, it is already reserved, though not confirmed"
            )
        if self._rooms[room_id].is_booked:
            return TransitionResult(False, rejected, f"{prefix}, it is already booked")

        reservation_id = self._new_id()
        self._reservations[reservation_id] = Reservation(
            reservation_id=reservation_id,
            customer_id=customer_id,
            room_id=room_id,
            originating_agent_id=agent_id,
        )
        return TransitionResult(
            True,
            OutcomeType.BOOKING_MADE,
            f"reservation for room with ID: {room_id} was registered, "
            f"awaiting booking confirmation with RESERVATION_ID {reservation_id}",
            reservation_id=reservation_id,
        )

    # ------------------------------------------------------------------
    # CONFIRM_BOOKING
    # ------------------------------------------------------------------

    def confirm(self, reservation_id: str, room_id: str) -> TransitionResult:
        """
        PENDING -> BOOKED.

        A booked room is refused whatever the reservation id is.
        """
        rejected = OutcomeType.INVALID_CONFIRMATION_DETAILS
        prefix = f"can't confirm a reservation with ID: {reservation_id}"

        room = self._rooms.get(room_id)
        if room is None:
            return TransitionResult(False, rejected, f"{prefix}, the room does not exist")
        if room.is_booked:
            return TransitionResult(False, rejected, f"{prefix}, the room is already booked")

        reservation = self._reservations.get(reservation_id)
        if reservation is None or reservation.room_id != room_id or reservation.confirmed:
            return TransitionResult(False, rejected, f"{prefix}, it doesn't exist")

        room.book()
        reservation.confirmed = True
        return TransitionResult(
            True,
            OutcomeType.BOOKING_CONFIRMED,
            f"booking with reservation ID: {reservation_id} was confirmed successfully",
            reservation_id=reservation_id,
            state_changed=True,
        )

    # ------------------------------------------------------------------
    # CANCEL_BOOKING
    # ------------------------------------------------------------------

    def cancel(self, reservation_id: str, room_id: str) -> TransitionResult:
        """BOOKED -> FREE. Only confirmed bookings can be cancelled."""
        rejected = OutcomeType.INVALID_CANCELLATION_DETAILS
        prefix = f"can't cancel a reservation with ID: {reservation_id}"

        room = self._rooms.get(room_id)
        if room is None:
            return TransitionResult(False, rejected, f"{prefix}, the room does not exist")
        if not room.is_booked:
            return TransitionResult(False, rejected, f"{prefix}, the room is not booked")

        reservation = self._reservations.get(reservation_id)
        if reservation is None or reservation.room_id != room_id:
            return TransitionResult(False, rejected, f"{prefix}, it doesn't exist")

        room.cancel_booking()
        del self._reservations[reservation_id]
        return TransitionResult(
            True,
            OutcomeType.BOOKING_CANCELLED,
            f"booking with ID: {reservation_id} was cancelled successfully",
            reservation_id=reservation_id,
            state_changed=True,
        )

    def check_invariants(self) -> bool:
        """
        Check that booking invariants hold.

        These should NEVER be violated.
        """
        live: Dict[str, int] = {}
        confirmed: Dict[str, int] = {}
        for reservation in self._reservations.values():
            # No reservation for an unknown room
            assert reservation.room_id in self._rooms
            bucket = confirmed if reservation.confirmed else live
            bucket[reservation.room_id] = bucket.get(reservation.room_id, 0) + 1

        for room_id, room in self._rooms.items():
            # At most one live reservation per room
            assert live.get(room_id, 0) <= 1
            # Booked rooms have exactly one confirmed reservation
            assert confirmed.get(room_id, 0) == (1 if room.is_booked else 0)
            # A room is never both pending and booked
            assert not (room.is_booked and live.get(room_id, 0))

        return True
