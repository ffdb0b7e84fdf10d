"""
Customer Session
================

Issues one request at a time and blocks until its reply arrives.

    session = CustomerSession(bus, request_timeout=30)
    session.start()
    made = session.make_booking("b1", "r1")        # blocks
    session.confirm_booking(made.reservation_id, "b1", "r1")

Requests go to the shared Agent inbox; replies come back on the
Customer's personal queue (routing key = customer id). Each request
carries a fresh request id and the session only accepts the reply that
echoes it. A reply for a request that already timed out is logged and
dropped, never handed to a later call.
"""

import logging
import threading
from typing import List, Optional

from ..exceptions import ProtocolError
from ..protocol import (
    BuildingSnapshot,
    BuildingsList,
    CancelBooking,
    ConfirmBooking,
    CustomerRequest,
    GetBuildingsList,
    MakeBooking,
    Outcome,
    PendingReply,
    Reply,
    decode,
    encode,
    generate_id,
    parse_reply,
)
from ..transport import MessageBus

logger = logging.getLogger(__name__)


class CustomerSession:
    """
    A Customer actor.

    Args:
        bus: The Customer's MessageBus
        customer_id: Routing key for replies (generated if omitted)
        request_timeout: Seconds to wait per request, None waits forever
    """

    def __init__(
        self,
        bus: MessageBus,
        customer_id: Optional[str] = None,
        request_timeout: Optional[float] = None,
    ):
        self.bus = bus
        self.topology = bus.topology
        self.customer_id = customer_id or generate_id()
        self.request_timeout = request_timeout
        self._pending: Optional[PendingReply] = None
        self._pending_lock = threading.Lock()
        # One outstanding request at a time
        self._request_lock = threading.Lock()
        self._started = False

    @property
    def inbox(self) -> str:
        return self.topology.inbox_queue(self.customer_id)

    def start(self) -> None:
        if self._started:
            return
        topo = self.topology
        # Requests wait in the shared queue until an Agent consumes them
        self.bus.bind(topo.customer_request_queue, topo.customer_request_exchange)
        self.bus.bind(self.inbox, topo.customer_reply_exchange, self.customer_id)
        self.bus.consume(self.inbox, self.handle_reply, name=f"customer-{self.customer_id}")
        self._started = True
        logger.info(f"Customer {self.customer_id} session started")

    def stop(self) -> None:
        self.bus.close()
        self.bus.delete_queue(self.inbox)
        self._started = False

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def get_buildings_list(self) -> List[BuildingSnapshot]:
        """Buildings known to whichever Agent picks up the request."""
        reply = self._request(lambda request_id: GetBuildingsList(
            customer_id=self.customer_id,
            request_id=request_id,
        ))
        if isinstance(reply, BuildingsList):
            return reply.buildings
        raise ProtocolError(f"Expected BUILDINGS_LIST, got {reply.type}")

    def make_booking(self, building_id: str, room_id: str) -> Outcome:
        return self._request(lambda request_id: MakeBooking(
            customer_id=self.customer_id,
            building_id=building_id,
            room_id=room_id,
            request_id=request_id,
        ))

    def confirm_booking(self, reservation_id: str, building_id: str, room_id: str) -> Outcome:
        return self._request(lambda request_id: ConfirmBooking(
            customer_id=self.customer_id,
            reservation_id=reservation_id,
            building_id=building_id,
            room_id=room_id,
            request_id=request_id,
        ))

    def cancel_booking(self, reservation_id: str, building_id: str, room_id: str) -> Outcome:
        return self._request(lambda request_id: CancelBooking(
            customer_id=self.customer_id,
            reservation_id=reservation_id,
            building_id=building_id,
            room_id=room_id,
            request_id=request_id,
        ))

    # ------------------------------------------------------------------
    # Correlation
    # ------------------------------------------------------------------

    def _request(self, build) -> Reply:
        """Publish one request and block for its reply."""
        with self._request_lock:
            request_id = generate_id()
            message: CustomerRequest = build(request_id)
            pending = PendingReply(request_id)

            # Install the slot before publishing so an early reply is kept
            with self._pending_lock:
                self._pending = pending
            try:
                self.bus.send_direct(self.topology.customer_request_exchange, "", encode(message))
                logger.info(f"Customer {self.customer_id} sent {message.type} ({request_id})")
                return pending.wait(self.request_timeout)
            finally:
                with self._pending_lock:
                    if self._pending is pending:
                        self._pending = None

    def handle_reply(self, payload: bytes) -> None:
        """Consumer callback for the personal inbox."""
        try:
            reply = parse_reply(decode(payload))
        except ProtocolError as e:
            logger.warning(f"Customer {self.customer_id} dropped reply: {e}")
            return

        with self._pending_lock:
            pending = self._pending
        if pending is None or pending.request_id != reply.request_id or not pending.resolve(reply):
            logger.warning(
                f"Customer {self.customer_id} discarded late or unexpected "
                f"{reply.type} for request {reply.request_id}"
            )
            return
        logger.info(f"Customer {self.customer_id} received {reply.type} ({reply.request_id})")
