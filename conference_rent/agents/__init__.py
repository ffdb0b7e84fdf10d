"""
agents - The Three Actors
=========================

Question this layer answers:
"Who does what with a message?"

Building (building.py):
- Owns rooms, runs the FSM, replies to Agents
- Broadcasts its snapshot at startup and after each committed change

BookingAgent (agent.py):
- Caches snapshots (BuildingDirectory)
- Answers GET_BUILDINGS_LIST from cache
- Forwards bookings to Buildings and replies to Customers

CustomerSession (customer.py):
- One request at a time, blocks for the matching reply

```python
session.make_booking(building_id, room_id)   # -> Outcome
```

Actors do NOT:
- Share memory with each other (only the bus)
- Know exchange names (that's the BusTopology they are given)
"""

from .agent import BookingAgent
from .building import Building
from .customer import CustomerSession
from .directory import BuildingDirectory

__all__ = ["BookingAgent", "Building", "CustomerSession", "BuildingDirectory"]
