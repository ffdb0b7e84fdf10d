"""
Booking Agent
=============

Routes Customer requests to Buildings and Building replies back to
Customers.

Three inboxes:
1. snapshot queue   (fanout)  -> keep the BuildingDirectory fresh
2. shared inbox     (direct)  -> Customer requests, competing with other Agents
3. personal inbox   (direct, key = agent_id) -> Building replies

Per request:
- GET_BUILDINGS_LIST: answered from the cache, no Building round trip
- MAKE_BOOKING:       checked against the cache, forwarded if plausible
- CONFIRM / CANCEL:   forwarded unconditionally, the Building decides

The Agent keeps no per-request state. The customer id and request id
ride along inside the forwarded message and come back in the Building's
reply, so one Agent can have any number of requests in flight.
"""

import logging
import threading
from typing import Optional

from ..exceptions import ProtocolError
from ..protocol import (
    BuildingsList,
    CancelBooking,
    CancelReservation,
    ConfirmBooking,
    ConfirmReservation,
    GetBuildingsList,
    MakeBooking,
    Outcome,
    OutcomeType,
    ReserveRoom,
    decode,
    decode_snapshot,
    encode,
    generate_id,
    parse_customer_request,
    parse_reply,
)
from ..transport import ExchangeType, MessageBus
from .directory import BuildingDirectory

logger = logging.getLogger(__name__)

INVALID_BUILDING_OR_ROOM = "Booking failed, invalid building or room ID"


class BookingAgent:
    """
    An Agent actor.

    Example:
        agent = BookingAgent(bus)
        agent.start()
        len(agent.directory)   # grows as Buildings broadcast
    """

    def __init__(self, bus: MessageBus, agent_id: Optional[str] = None):
        self.bus = bus
        self.topology = bus.topology
        self.agent_id = agent_id or generate_id()
        self.directory = BuildingDirectory()
        self._reply_bound = False
        self._bind_lock = threading.Lock()
        self._started = False

    @property
    def inbox(self) -> str:
        return self.topology.inbox_queue(self.agent_id)

    def start(self) -> None:
        """Subscribe to snapshots, the shared inbox and the personal inbox."""
        if self._started:
            return
        topo = self.topology

        snapshot_queue = topo.snapshot_queue(self.agent_id)
        self.bus.bind(snapshot_queue, topo.snapshot_exchange, kind=ExchangeType.FANOUT)
        self.bus.consume(snapshot_queue, self.handle_snapshot, name=f"agent-{self.agent_id}-snapshots")

        self.bus.bind(topo.customer_request_queue, topo.customer_request_exchange)
        self.bus.consume(
            topo.customer_request_queue,
            self.handle_customer_request,
            name=f"agent-{self.agent_id}-customers",
        )

        self.bus.declare_exchange(topo.customer_reply_exchange, ExchangeType.DIRECT)
        self.bus.declare_exchange(topo.building_request_exchange, ExchangeType.DIRECT)

        # Bound to the building-reply exchange on the first forward
        self.bus.consume(self.inbox, self.handle_building_reply, name=f"agent-{self.agent_id}-buildings")

        self._started = True
        logger.info(f"Agent {self.agent_id} is listening for customers and building updates")

    def stop(self) -> None:
        """Stop consuming and drop the private queues. The shared inbox stays."""
        self.bus.close()
        self.bus.delete_queue(self.topology.snapshot_queue(self.agent_id))
        self.bus.delete_queue(self.inbox)
        with self._bind_lock:
            self._reply_bound = False
        self._started = False

    # ------------------------------------------------------------------
    # Snapshot fanout
    # ------------------------------------------------------------------

    def handle_snapshot(self, payload: bytes) -> None:
        try:
            snapshot = decode_snapshot(payload)
        except ProtocolError as e:
            logger.warning(f"Agent {self.agent_id} dropped snapshot: {e}")
            return
        is_new = self.directory.update(snapshot)
        logger.info(
            f"Agent {self.agent_id} {'added' if is_new else 'updated'} "
            f"building {snapshot.building_id}"
        )

    # ------------------------------------------------------------------
    # Customer requests
    # ------------------------------------------------------------------

    def handle_customer_request(self, payload: bytes) -> None:
        try:
            request = parse_customer_request(decode(payload))
        except ProtocolError as e:
            self._reject_unparseable(e)
            return

        logger.info(f"Agent {self.agent_id} received {request.type} from customer {request.customer_id}")

        if isinstance(request, GetBuildingsList):
            reply = BuildingsList(
                customer_id=request.customer_id,
                request_id=request.request_id,
                buildings=self.directory.snapshots(),
            )
            self._reply(request.customer_id, encode(reply))

        elif isinstance(request, MakeBooking):
            if not self.directory.has_room(request.building_id, request.room_id):
                reply = Outcome(
                    type=OutcomeType.INVALID_BOOKING_DETAILS,
                    customer_id=request.customer_id,
                    request_id=request.request_id,
                    text=INVALID_BUILDING_OR_ROOM,
                )
                self._reply(request.customer_id, encode(reply))
                return
            self._forward(request.building_id, ReserveRoom(
                room_id=request.room_id,
                customer_id=request.customer_id,
                agent_id=self.agent_id,
                request_id=request.request_id,
            ))

        elif isinstance(request, ConfirmBooking):
            self._forward(request.building_id, ConfirmReservation(
                reservation_id=request.reservation_id,
                agent_id=self.agent_id,
                room_id=request.room_id,
                customer_id=request.customer_id,
                request_id=request.request_id,
            ))

        elif isinstance(request, CancelBooking):
            self._forward(request.building_id, CancelReservation(
                reservation_id=request.reservation_id,
                agent_id=self.agent_id,
                room_id=request.room_id,
                customer_id=request.customer_id,
                request_id=request.request_id,
            ))

    def _ensure_reply_binding(self) -> None:
        with self._bind_lock:
            if self._reply_bound:
                return
            self.bus.bind(self.inbox, self.topology.building_reply_exchange, self.agent_id)
            self._reply_bound = True

    def _forward(self, building_id: str, message) -> None:
        self._ensure_reply_binding()
        delivered = self.bus.send_direct(
            self.topology.building_request_exchange, building_id, encode(message)
        )
        if delivered:
            logger.info(f"Agent {self.agent_id} forwarded {message.type} to building {building_id}")
        else:
            logger.warning(
                f"Agent {self.agent_id} forwarded {message.type} to building {building_id}, "
                f"but no building is listening"
            )

    def _reply(self, customer_id: str, payload: bytes) -> None:
        delivered = self.bus.send_direct(self.topology.customer_reply_exchange, customer_id, payload)
        if not delivered:
            logger.warning(f"Agent {self.agent_id} has no route to customer {customer_id}")

    def _reject_unparseable(self, error: ProtocolError) -> None:
        if error.reply_to is None:
            logger.warning(f"Agent {self.agent_id} dropped customer message: {error}")
            return
        payload = error.details.get("payload", {})
        reply = Outcome(
            type=OutcomeType.UNRECOGNIZED_REQUEST,
            customer_id=str(error.reply_to),
            request_id=str(payload.get("request_id", "")),
            text=str(error),
        )
        logger.warning(f"Agent {self.agent_id} rejected message from {error.reply_to}: {error}")
        self._reply(str(error.reply_to), encode(reply))

    # ------------------------------------------------------------------
    # Building replies
    # ------------------------------------------------------------------

    def handle_building_reply(self, payload: bytes) -> None:
        """Forward a Building's reply, untouched, to the Customer named in it."""
        try:
            reply = parse_reply(decode(payload))
        except ProtocolError as e:
            logger.warning(f"Agent {self.agent_id} dropped building reply: {e}")
            return
        if not reply.customer_id:
            logger.warning(f"Agent {self.agent_id} dropped {reply.type} with no customer id")
            return
        logger.info(f"Agent {self.agent_id} relaying {reply.type} to customer {reply.customer_id}")
        self._reply(reply.customer_id, payload)
