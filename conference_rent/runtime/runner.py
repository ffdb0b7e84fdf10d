"""
Runtime - The Shell
===================

Wires Buildings, Agents and Customers onto one in-process broker and
drives them from the command line.

Run methods:
    python -m conference_rent.runtime.runner --mode demo         # scripted walkthrough
    python -m conference_rent.runtime.runner --mode interactive  # menu
    python -m conference_rent.runtime.runner --mode race         # N customers, one room

Start order matters the same way it does on a real broker: Agents bind
their snapshot queues first, then Buildings broadcast.
"""

import argparse
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from ..agents import BookingAgent, Building, CustomerSession
from ..exceptions import RequestTimedOut
from ..protocol import BuildingSnapshot, Outcome
from ..transport import InMemoryBroker, MessageBus
from .config import Config, load_config
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


# ============================================================================
# Runtime Configuration
# ============================================================================

@dataclass
class RuntimeConfig:
    """Runtime configuration (how to run, not what to book)."""
    mode: str = "demo"              # demo, interactive, race
    config_path: Optional[str] = None
    buildings: Optional[int] = None  # overrides the config file
    agents: Optional[int] = None
    customers: int = 5              # race mode
    verbose: bool = True


# ============================================================================
# Booking Runtime
# ============================================================================

class BookingRuntime:
    """
    In-process runtime.

    Example:
        runtime = BookingRuntime(RuntimeConfig(buildings=1, agents=2))
        runtime.initialize()
        customer = runtime.create_customer()
        customer.get_buildings_list()
        runtime.shutdown()
    """

    def __init__(self, config: RuntimeConfig):
        self.runtime_config = config
        self.system_config: Optional[Config] = None
        self.broker: Optional[InMemoryBroker] = None
        self.agents: List[BookingAgent] = []
        self.buildings: List[Building] = []
        self.customers: List[CustomerSession] = []
        self._initialized = False

    def _bus(self) -> MessageBus:
        return MessageBus(self.broker, self.system_config.topology)

    def initialize(self, snapshot_timeout: float = 5.0) -> None:
        """Start Agents, then Buildings, and wait for snapshots to land."""
        if self._initialized:
            return

        self.system_config = load_config(self.runtime_config.config_path)
        configure_logging(
            self.system_config.logging.level if self.runtime_config.verbose else "WARNING"
        )
        self.broker = InMemoryBroker()

        agent_count = self.runtime_config.agents or self.system_config.agents.count
        for _ in range(agent_count):
            agent = BookingAgent(self._bus())
            agent.start()
            self.agents.append(agent)

        building_cfg = self.system_config.buildings
        building_count = self.runtime_config.buildings or building_cfg.count
        for _ in range(building_count):
            building = Building(
                self._bus(),
                room_ids=building_cfg.room_ids or None,
                room_count=building_cfg.rooms_per_building,
            )
            building.start()
            self.buildings.append(building)

        self._initialized = True
        if not self.wait_for_snapshots(snapshot_timeout):
            logger.warning("Not every agent has every building snapshot yet")
        logger.info(f"Runtime ready: {len(self.agents)} agent(s), {len(self.buildings)} building(s)")

    def wait_for_snapshots(self, timeout: float = 5.0) -> bool:
        """Block until every Agent caches the current state of every Building."""
        def settled() -> bool:
            return all(
                agent.directory.get(b.building_id) == b.snapshot()
                for agent in self.agents
                for b in self.buildings
            )
        return wait_until(settled, timeout)

    def create_customer(self, customer_id: Optional[str] = None) -> CustomerSession:
        session = CustomerSession(
            self._bus(),
            customer_id=customer_id,
            request_timeout=self.system_config.customer.request_timeout_seconds,
        )
        session.start()
        self.customers.append(session)
        return session

    def shutdown(self) -> None:
        """Clean shutdown."""
        logger.info("Runtime shutting down")
        for actor in [*self.customers, *self.buildings, *self.agents]:
            actor.stop()
        if self.broker is not None:
            self.broker.close()
        self.customers, self.buildings, self.agents = [], [], []
        self._initialized = False


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> bool:
    """Poll `predicate` until it is true or `timeout` seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def format_buildings(buildings: Iterable[BuildingSnapshot]) -> str:
    """Human-readable building list."""
    lines = []
    for building in buildings:
        lines.append(f"Building ID: {building.building_id}")
        lines.append("  Rooms:")
        for room in building.rooms:
            lines.append(f"    - Room ID: {room.room_id}, Booked: {str(room.is_booked).lower()}")
        lines.append("")
    return "\n".join(lines) if lines else "No buildings available."


# ============================================================================
# CLI Entrypoints
# ============================================================================

def run_demo(runtime: BookingRuntime) -> List[Outcome]:
    """Walk one room through reserve, double reserve, confirm, cancel."""
    print("=" * 50)
    print("DEMO MODE")
    print("=" * 50 + "\n")

    alice = runtime.create_customer()
    bob = runtime.create_customer()

    buildings = alice.get_buildings_list()
    print(format_buildings(buildings))

    building = buildings[0]
    room_id = building.rooms[0].room_id
    outcomes = []

    made = alice.make_booking(building.building_id, room_id)
    outcomes.append(made)
    print(f"[Customer {alice.customer_id}] {made}")

    clash = bob.make_booking(building.building_id, room_id)
    outcomes.append(clash)
    print(f"[Customer {bob.customer_id}] {clash}")

    confirmed = alice.confirm_booking(made.reservation_id, building.building_id, room_id)
    outcomes.append(confirmed)
    print(f"[Customer {alice.customer_id}] {confirmed}")

    runtime.wait_for_snapshots()
    print()
    print(format_buildings(alice.get_buildings_list()))

    cancelled = alice.cancel_booking(made.reservation_id, building.building_id, room_id)
    outcomes.append(cancelled)
    print(f"[Customer {alice.customer_id}] {cancelled}")

    print("\n" + "=" * 50)
    print("SUMMARY")
    print("=" * 50)
    for outcome in outcomes:
        status = "✓" if outcome.succeeded else "✗"
        print(f"  {status} {outcome.type}")
    print("=" * 50)
    return outcomes


def run_race(runtime: BookingRuntime, count: int) -> int:
    """`count` customers reserve the same room at once. Returns the winners."""
    print("=" * 50)
    print(f"RACE MODE ({count} customers, one room)")
    print("=" * 50 + "\n")

    customers = [runtime.create_customer() for _ in range(count)]
    building = runtime.buildings[0]
    room_id = building.room_ids[0]

    with ThreadPoolExecutor(max_workers=count) as pool:
        outcomes = list(pool.map(
            lambda c: c.make_booking(building.building_id, room_id),
            customers,
        ))

    winners = sum(1 for o in outcomes if o.succeeded)
    for customer, outcome in zip(customers, outcomes):
        status = "✓" if outcome.succeeded else "✗"
        print(f"  {status} {customer.customer_id}: {outcome}")

    print("\n" + "=" * 50)
    print(f"Reservations granted: {winners}/{count}")
    print("=" * 50)
    return winners


MENU = """List of actions:
1. Get list of buildings.
2. Make booking.
3. Confirm booking.
4. Cancel booking.
0. Exit"""


def run_interactive(runtime: BookingRuntime, read: Callable[[str], str] = input) -> None:
    """Menu-driven Customer session."""
    customer = runtime.create_customer()
    print(f"Welcome to Conference Rent system, Customer {customer.customer_id}!")

    while True:
        print(MENU)
        choice = read("Enter your choice: ").strip()
        try:
            if choice == "0":
                print("Goodbye!")
                return
            elif choice == "1":
                print(format_buildings(customer.get_buildings_list()))
            elif choice == "2":
                building_id = read("Building ID: ").strip()
                room_id = read("Room ID: ").strip()
                print(customer.make_booking(building_id, room_id))
            elif choice in ("3", "4"):
                reservation_id = read("Reservation ID: ").strip()
                building_id = read("Building ID: ").strip()
                room_id = read("Room ID: ").strip()
                if choice == "3":
                    print(customer.confirm_booking(reservation_id, building_id, room_id))
                else:
                    print(customer.cancel_booking(reservation_id, building_id, room_id))
            else:
                print("Invalid choice. Please select option from the menu (0-4).")
        except RequestTimedOut as e:
            print(f"[Error] {e}")


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="Conference Rent booking system",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  conference-rent --mode demo                 # Scripted walkthrough
  conference-rent --mode interactive          # Menu-driven customer
  conference-rent --mode race --customers 20  # Concurrency check
"""
    )

    parser.add_argument("--mode", choices=["demo", "interactive", "race"], default="demo")
    parser.add_argument("--config", type=str, help="Config file path")
    parser.add_argument("--buildings", type=int, help="Number of buildings")
    parser.add_argument("--agents", type=int, help="Number of agents")
    parser.add_argument("--customers", type=int, default=5, help="Race mode customers")
    parser.add_argument("--quiet", action="store_true")

    args = parser.parse_args(argv)

    config = RuntimeConfig(
        mode=args.mode,
        config_path=args.config,
        buildings=args.buildings,
        agents=args.agents,
        customers=args.customers,
        verbose=not args.quiet,
    )

    runtime = BookingRuntime(config)

    try:
        runtime.initialize()

        if args.mode == "demo":
            run_demo(runtime)
        elif args.mode == "race":
            run_race(runtime, args.customers)
        elif args.mode == "interactive":
            run_interactive(runtime)

    finally:
        runtime.shutdown()


if __name__ == "__main__":
    main()
