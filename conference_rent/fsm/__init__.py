"""
fsm - Booking Safety Layer
==========================

Question this layer answers:
"Is this booking allowed right now?"

FSM enforces:
- FREE -> PENDING -> BOOKED -> FREE, nothing else
- At most one live reservation per room
- Confirm refuses booked rooms, cancel refuses unbooked rooms

```python
if fsm.live_reservation_for(room_id):
    reject("already reserved, though not confirmed")
```

This layer does NOT:
- Parse or send messages (that's protocol / transport)
- Lock anything (the Building is the single writer)
"""

from .state_machine import Reservation, Room, RoomBookingFSM, RoomState, TransitionResult

__all__ = ["Reservation", "Room", "RoomBookingFSM", "RoomState", "TransitionResult"]
