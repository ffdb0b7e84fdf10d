"""
Tests for FSM Layer
===================
"""

import pytest

from conference_rent.exceptions import RoomStateError
from conference_rent.fsm import Room, RoomBookingFSM, RoomState
from conference_rent.protocol import OutcomeType


def make_fsm(*room_ids, reservation_ids=("res1", "res2", "res3", "res4")):
    ids = iter(reservation_ids)
    return RoomBookingFSM([Room(r) for r in room_ids], id_factory=lambda: next(ids))


class TestRoom:
    """Room contract checks."""

    def test_generated_id(self):
        """A room without an id gets an 8-character one."""
        room = Room()
        assert len(room.room_id) == 8
        assert room.is_booked is False

    def test_book_twice_raises(self):
        """Booking a booked room breaks the contract."""
        room = Room("r1")
        room.book()
        with pytest.raises(RoomStateError):
            room.book()

    def test_cancel_free_room_raises(self):
        """Cancelling a free room breaks the contract."""
        with pytest.raises(RoomStateError):
            Room("r1").cancel_booking()


class TestReserve:
    """MAKE_BOOKING: FREE -> PENDING."""

    def test_reserve_free_room(self):
        """Reserving a free room moves it to PENDING."""
        fsm = make_fsm("r1")
        result = fsm.reserve("r1", customer_id="c1", agent_id="a1")

        assert result.accepted
        assert result.outcome == OutcomeType.BOOKING_MADE
        assert result.reservation_id == "res1"
        assert "RESERVATION_ID res1" in result.reason
        assert result.state_changed is False
        assert fsm.room_state("r1") == RoomState.PENDING

    def test_pending_room_still_reports_free(self):
        """Pending is invisible outside the Building."""
        fsm = make_fsm("r1")
        fsm.reserve("r1", "c1", "a1")
        assert fsm.get_room("r1").is_booked is False

    def test_reservation_records_originator(self):
        """The reservation remembers customer and agent."""
        fsm = make_fsm("r1")
        fsm.reserve("r1", "c1", "a1")
        reservation = fsm.get_reservation("res1")
        assert reservation.customer_id == "c1"
        assert reservation.originating_agent_id == "a1"
        assert reservation.confirmed is False

    def test_second_reservation_rejected(self):
        """Only one live reservation per room."""
        fsm = make_fsm("r1")
        fsm.reserve("r1", "c1", "a1")
        result = fsm.reserve("r1", "c2", "a2")

        assert not result.accepted
        assert result.outcome == OutcomeType.INVALID_BOOKING_DETAILS
        assert "already reserved, though not confirmed" in result.reason
        assert len(fsm.reservations) == 1

    def test_unknown_room_rejected(self):
        """Reserving an unknown room is refused."""
        fsm = make_fsm("r1")
        result = fsm.reserve("nope", "c1", "a1")
        assert result.outcome == OutcomeType.INVALID_BOOKING_DETAILS
        assert "does not exist" in result.reason

    def test_booked_room_rejected(self):
        """Reserving a booked room is refused."""
        fsm = make_fsm("r1")
        fsm.confirm(fsm.reserve("r1", "c1", "a1").reservation_id, "r1")
        result = fsm.reserve("r1", "c2", "a1")
        assert not result.accepted
        assert "already booked" in result.reason


class TestConfirm:
    """CONFIRM_BOOKING: PENDING -> BOOKED."""

    def test_confirm_books_room(self):
        """Confirming a pending reservation books the room."""
        fsm = make_fsm("r1")
        fsm.reserve("r1", "c1", "a1")
        result = fsm.confirm("res1", "r1")

        assert result.accepted
        assert result.outcome == OutcomeType.BOOKING_CONFIRMED
        assert result.state_changed is True
        assert fsm.get_room("r1").is_booked
        assert fsm.room_state("r1") == RoomState.BOOKED

    def test_confirm_booked_room_always_fails(self):
        """Even with the right reservation id."""
        fsm = make_fsm("r1")
        fsm.reserve("r1", "c1", "a1")
        fsm.confirm("res1", "r1")
        result = fsm.confirm("res1", "r1")
        assert result.outcome == OutcomeType.INVALID_CONFIRMATION_DETAILS
        assert result.state_changed is False

    def test_confirm_unknown_reservation(self):
        """An unknown reservation id cannot be confirmed."""
        fsm = make_fsm("r1")
        result = fsm.confirm("ghost", "r1")
        assert result.outcome == OutcomeType.INVALID_CONFIRMATION_DETAILS
        assert "doesn't exist" in result.reason
        assert not fsm.get_room("r1").is_booked

    def test_confirm_with_wrong_room(self):
        """A reservation only confirms the room it was made for."""
        fsm = make_fsm("r1", "r2")
        fsm.reserve("r1", "c1", "a1")
        result = fsm.confirm("res1", "r2")
        assert not result.accepted
        assert not fsm.get_room("r2").is_booked
        assert fsm.room_state("r1") == RoomState.PENDING

    def test_confirm_unknown_room(self):
        """Confirming against an unknown room is refused."""
        fsm = make_fsm("r1")
        fsm.reserve("r1", "c1", "a1")
        assert fsm.confirm("res1", "nope").outcome == OutcomeType.INVALID_CONFIRMATION_DETAILS


class TestCancel:
    """CANCEL_BOOKING: BOOKED -> FREE."""

    def test_cancel_frees_room_and_drops_reservation(self):
        """Cancelling frees the room and forgets the reservation."""
        fsm = make_fsm("r1")
        fsm.reserve("r1", "c1", "a1")
        fsm.confirm("res1", "r1")
        result = fsm.cancel("res1", "r1")

        assert result.accepted
        assert result.outcome == OutcomeType.BOOKING_CANCELLED
        assert result.state_changed is True
        assert fsm.room_state("r1") == RoomState.FREE
        assert fsm.get_reservation("res1") is None

    def test_cancel_free_room_always_fails(self):
        """A free room cannot be cancelled."""
        fsm = make_fsm("r1")
        result = fsm.cancel("res1", "r1")
        assert result.outcome == OutcomeType.INVALID_CANCELLATION_DETAILS
        assert "not booked" in result.reason

    def test_cancel_pending_reservation_fails(self):
        """Unconfirmed reservations cannot be cancelled."""
        fsm = make_fsm("r1")
        fsm.reserve("r1", "c1", "a1")
        result = fsm.cancel("res1", "r1")
        assert not result.accepted
        assert fsm.room_state("r1") == RoomState.PENDING

    def test_cancel_with_unknown_reservation(self):
        """An unknown reservation id cannot cancel a booking."""
        fsm = make_fsm("r1")
        fsm.reserve("r1", "c1", "a1")
        fsm.confirm("res1", "r1")
        result = fsm.cancel("ghost", "r1")
        assert result.outcome == OutcomeType.INVALID_CANCELLATION_DETAILS
        assert fsm.get_room("r1").is_booked


class TestTransitions:
    """Lifecycle and invariants."""

    def test_transition_table(self):
        """Allowed transitions follow the room's state."""
        fsm = make_fsm("r1")
        assert fsm.can_transition("r1", RoomState.PENDING)
        assert not fsm.can_transition("r1", RoomState.BOOKED)
        fsm.reserve("r1", "c1", "a1")
        assert fsm.can_transition("r1", RoomState.BOOKED)
        assert not fsm.can_transition("r1", RoomState.FREE)

    def test_full_cycle_repeats(self):
        """reserve -> confirm -> cancel can run again and again."""
        fsm = make_fsm("r1", reservation_ids=[f"res{i}" for i in range(5)])
        for _ in range(5):
            made = fsm.reserve("r1", "c1", "a1")
            assert made.accepted
            assert fsm.confirm(made.reservation_id, "r1").accepted
            assert fsm.cancel(made.reservation_id, "r1").accepted
            assert fsm.room_state("r1") == RoomState.FREE
            assert fsm.check_invariants()
        assert fsm.reservations == []

    def test_invariants_hold_after_rejections(self):
        """Refused requests never break the invariants."""
        fsm = make_fsm("r1", "r2")
        fsm.reserve("r1", "c1", "a1")
        fsm.reserve("r1", "c2", "a1")
        fsm.confirm("bogus", "r1")
        fsm.cancel("res1", "r1")
        fsm.reserve("r2", "c3", "a2")
        fsm.confirm("res2", "r2")
        assert fsm.check_invariants()

    def test_rooms_keep_creation_order(self):
        """Rooms are listed in the order they were given."""
        fsm = make_fsm("b", "a", "c")
        assert [room.room_id for room in fsm.rooms] == ["b", "a", "c"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
