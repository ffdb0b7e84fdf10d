"""
Building Coordinator
====================

The authoritative owner of a set of rooms.

Inbound: requests from Agents on its personal queue, bound to the
building-request exchange with the building id as routing key.

Outbound:
- one Outcome per request, sent to the originating Agent (the agent id
  travels inside the request)
- a snapshot broadcast at startup and after every committed change

Key architectural rule:
The Building is the single writer of its rooms. Every request goes
through the FSM under one lock, which is what keeps two Agents from
reserving the same room at once.
"""

import logging
import threading
from typing import Iterable, List, Optional

from ..exceptions import ProtocolError
from ..fsm import Room, RoomBookingFSM, TransitionResult
from ..protocol import (
    BuildingRequest,
    BuildingSnapshot,
    CancelReservation,
    ConfirmReservation,
    Outcome,
    OutcomeType,
    ReserveRoom,
    decode,
    encode,
    encode_snapshot,
    generate_id,
    parse_building_request,
)
from ..transport import ExchangeType, MessageBus

logger = logging.getLogger(__name__)

DEFAULT_ROOM_COUNT = 3


class Building:
    """
    A Building actor.

    Example:
        building = Building(bus, room_ids=["r1", "r2"])
        building.start()              # bind inbox, broadcast snapshot
        building.snapshot().rooms     # (RoomSnapshot("r1", False), ...)
    """

    def __init__(
        self,
        bus: MessageBus,
        building_id: Optional[str] = None,
        room_ids: Optional[Iterable[str]] = None,
        room_count: int = DEFAULT_ROOM_COUNT,
    ):
        self.bus = bus
        self.topology = bus.topology
        self.building_id = building_id or generate_id()
        if room_ids:
            rooms = [Room(room_id) for room_id in room_ids]
        else:
            rooms = [Room() for _ in range(room_count)]
        self.fsm = RoomBookingFSM(rooms)
        self._lock = threading.Lock()
        self._started = False

    @property
    def inbox(self) -> str:
        return self.topology.inbox_queue(self.building_id)

    @property
    def room_ids(self) -> List[str]:
        return [room.room_id for room in self.fsm.rooms]

    def start(self) -> None:
        """Bind the request inbox, start consuming, announce ourselves."""
        if self._started:
            return
        self.bus.declare_exchange(self.topology.snapshot_exchange, ExchangeType.FANOUT)
        self.bus.declare_exchange(self.topology.building_reply_exchange, ExchangeType.DIRECT)
        self.bus.bind(self.inbox, self.topology.building_request_exchange, self.building_id)
        self.bus.consume(self.inbox, self.handle_request, name=f"building-{self.building_id}")
        self._started = True
        logger.info(f"Building {self.building_id} started with rooms {self.room_ids}")
        self.broadcast_snapshot()

    def stop(self) -> None:
        self.bus.close()
        self.bus.delete_queue(self.inbox)
        self._started = False

    def snapshot(self) -> BuildingSnapshot:
        with self._lock:
            return BuildingSnapshot.of(self.building_id, self.fsm.rooms)

    def broadcast_snapshot(self) -> int:
        with self._lock:
            payload = encode_snapshot(self.building_id, self.fsm.rooms)
        delivered = self.bus.broadcast(self.topology.snapshot_exchange, payload)
        logger.info(f"Building {self.building_id} broadcast snapshot to {delivered} agent(s)")
        return delivered

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    def handle_request(self, payload: bytes) -> None:
        """Consumer callback for the Building's inbox."""
        try:
            request = parse_building_request(decode(payload))
        except ProtocolError as e:
            self._reject_unparseable(e)
            return

        logger.info(
            f"Building {self.building_id} received {request.type} for room "
            f"{request.room_id} from customer {request.customer_id} "
            f"through agent {request.agent_id}"
        )

        result = self.apply(request)
        reply = Outcome(
            type=result.outcome,
            customer_id=request.customer_id,
            request_id=request.request_id,
            text=result.reason,
            reservation_id=result.reservation_id if result.accepted else None,
        )
        self.bus.send_direct(self.topology.building_reply_exchange, request.agent_id, encode(reply))

        if result.state_changed:
            self.broadcast_snapshot()

    def apply(self, request: BuildingRequest) -> TransitionResult:
        """Run one request through the FSM. Serialized across threads."""
        with self._lock:
            if isinstance(request, ReserveRoom):
                return self.fsm.reserve(request.room_id, request.customer_id, request.agent_id)
            if isinstance(request, ConfirmReservation):
                return self.fsm.confirm(request.reservation_id, request.room_id)
            if isinstance(request, CancelReservation):
                return self.fsm.cancel(request.reservation_id, request.room_id)
        raise ValueError(f"Unknown request type: {type(request)}")

    def _reject_unparseable(self, error: ProtocolError) -> None:
        if error.reply_to is None:
            logger.warning(f"Building {self.building_id} dropped message: {error}")
            return

        payload = error.details.get("payload", {})
        reply = Outcome(
            type=OutcomeType.UNRECOGNIZED_REQUEST,
            customer_id=str(payload.get("customer_id", "")),
            request_id=str(payload.get("request_id", "")),
            text=str(error),
        )
        logger.warning(f"Building {self.building_id} rejected message from {error.reply_to}: {error}")
        self.bus.send_direct(self.topology.building_reply_exchange, error.reply_to, encode(reply))
