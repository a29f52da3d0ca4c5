"""
Offline console demo: drives the booking engine against seeded demo data.

Uses the real ConflictResolver, SlotValidator and BookingLifecycle on top
of the in-memory store. No database, no network. The clock is pinned to
the morning before the seeded bookings so every run is reproducible.

Usage:
    python console_demo.py
    python console_demo.py --scenario conflict
    python console_demo.py --scenario race
"""

import argparse
import asyncio
from datetime import datetime, timedelta, timezone

from booking_engine.adapters.memory import InMemoryBookingStore
from booking_engine.fixtures import DEMO_SALON_ID, DEMO_SPA_ID, seed_demo_data
from booking_engine.fixtures.demo_data import BEARD_TRIM_ID, HAIRCUT_ID
from booking_engine.scheduling import Actor, ConflictResolver, IllegalTransition
from booking_engine.schemas.booking_schema import BookingRequest, BookingStatus
from booking_engine.schemas.decision_schema import Accepted, Suggested, http_status_for

GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

EASTERN = timezone(timedelta(hours=-4))
DEMO_NOW = datetime(2025, 9, 30, 9, 0, tzinfo=EASTERN)

ALICE = "cmg07xud400101as7ee31qqtm"
CARLOS = "cmg07xud400111as7q8r3ybw3"
MICHAEL = "cmg07xub700081as75go8cbyw"
SARAH = "cmg07xubx000h1as7w2h9ome8"
DAVID = "cmg07xuda00151as7sv5t3vtf"
JAMES = "cmg07xuby000j1as7jack828g"
FACIAL = "o8jzldn6q3q2j4tjj36qe1ct"

SCENARIOS = ["booking", "conflict", "race", "lifecycle", "reschedule"]


def _at(hour: int, minute: int = 0, day: int = 1) -> datetime:
    return datetime(2025, 10, day, hour, minute, tzinfo=EASTERN)


def _salon_request(staff_id: str, service_id: str, starts_at: datetime,
                   client_id: str = MICHAEL) -> BookingRequest:
    return BookingRequest(
        tenant_id=DEMO_SALON_ID,
        client_id=client_id,
        staff_id=staff_id,
        service_id=service_id,
        starts_at=starts_at,
    )


class ConsoleSession:
    """Plays scripted booking scenarios and prints each decision."""

    def __init__(self) -> None:
        self.store = InMemoryBookingStore()
        self.resolver = ConflictResolver(
            self.store, self.store, self.store, self.store, self.store,
            clock=lambda: DEMO_NOW,
        )

    def say(self, text: str) -> None:
        print(f"{BOLD}>{RESET} {text}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def show(self, decision) -> None:
        status = http_status_for(decision)
        if isinstance(decision, Accepted):
            b = decision.booking
            replay = " (replayed)" if decision.replayed else ""
            print(f"{GREEN}  [{status}] accepted{replay}: {b.id} {b.status.value} "
                  f"{b.starts_at:%H:%M}-{b.ends_at:%H:%M}{RESET}")
        elif isinstance(decision, Suggested):
            slots = ", ".join(f"{s.start:%H:%M}" for s in decision.alternatives)
            print(f"{YELLOW}  [{status}] suggested: {decision.message} -> {slots}{RESET}")
        elif decision.kind == "rejected":
            print(f"{RED}  [{status}] rejected ({decision.reason.code}): {decision.message}{RESET}")
        else:
            print(f"{RED}  [{status}] timed out during {decision.stage}{RESET}")

    async def setup(self) -> None:
        await seed_demo_data(self.store)
        self.system_log(f"Seeded demo data; clock pinned to {DEMO_NOW.isoformat()}")

    # ------------------------------------------------------------------ #
    # Scenarios
    # ------------------------------------------------------------------ #

    async def scenario_booking(self) -> None:
        self.say("Michael books a beard trim with Carlos at 14:00")
        request = _salon_request(CARLOS, BEARD_TRIM_ID, _at(14))
        self.show(await self.resolver.request_booking(request, "demo-booking-1"))
        self.say("The client retries the same request")
        self.show(await self.resolver.request_booking(request, "demo-booking-1"))

    async def scenario_conflict(self) -> None:
        self.system_log("Alice has a CONFIRMED haircut 10:00-10:45 (occupies 09:45-11:00)")
        self.say("Haircut with Alice at 10:30")
        self.show(await self.resolver.request_booking(
            _salon_request(ALICE, HAIRCUT_ID, _at(10, 30)), "demo-conflict-1"))
        self.say("Haircut with Alice at 11:15 (back-to-back after buffers)")
        self.show(await self.resolver.request_booking(
            _salon_request(ALICE, HAIRCUT_ID, _at(11, 15)), "demo-conflict-2"))
        self.say("Haircut with Alice at 09:30 today (inside the 60 minute lead time)")
        self.show(await self.resolver.request_booking(
            _salon_request(ALICE, HAIRCUT_ID, DEMO_NOW + timedelta(minutes=30)), "demo-conflict-3"))

    async def scenario_race(self) -> None:
        self.say("Two clients ask for Carlos at 15:00 at the same moment")
        decisions = await asyncio.gather(
            self.resolver.request_booking(
                _salon_request(CARLOS, HAIRCUT_ID, _at(15), MICHAEL), "demo-race-1"),
            self.resolver.request_booking(
                _salon_request(CARLOS, HAIRCUT_ID, _at(15), SARAH), "demo-race-2"),
        )
        for decision in decisions:
            self.show(decision)

    async def scenario_lifecycle(self) -> None:
        self.say("James requests a facial with David (Demo Spa needs provider approval)")
        request = BookingRequest(
            tenant_id=DEMO_SPA_ID, client_id=JAMES, staff_id=DAVID,
            service_id=FACIAL, starts_at=_at(13),
        )
        decision = await self.resolver.request_booking(request, "demo-lifecycle-1")
        self.show(decision)
        if not isinstance(decision, Accepted):
            return
        booking_id = decision.booking.id
        steps = [
            (BookingStatus.APPROVED, Actor.PROVIDER),
            (BookingStatus.CONFIRMED, Actor.CLIENT),
            (BookingStatus.CANCELLED_BY_PROVIDER, Actor.PROVIDER),
            (BookingStatus.CANCELLED_BY_CLIENT, Actor.CLIENT),
        ]
        for target, actor in steps:
            try:
                booking = await self.resolver.transition(DEMO_SPA_ID, booking_id, target, actor)
                self.system_log(f"{actor.value}: -> {booking.status.value}")
            except IllegalTransition as exc:
                print(f"{RED}  {exc}{RESET}")

    async def scenario_reschedule(self) -> None:
        self.say("Michael moves his 10:00 haircut with Alice to 10:30")
        decision = await self.resolver.reschedule(
            DEMO_SALON_ID, "d331c4if65xaksv49q4mdfep", _at(10, 30),
            Actor.CLIENT, "demo-reschedule-1",
        )
        self.show(decision)
        if isinstance(decision, Accepted) and decision.replaced is not None:
            self.system_log(f"{decision.replaced.id} is now {decision.replaced.status.value}")

    async def run(self, names: list[str]) -> None:
        await self.setup()
        for name in names:
            print(f"\n{BOLD}=== {name} ==={RESET}")
            await getattr(self, f"scenario_{name}")()


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline booking engine demo")
    parser.add_argument(
        "--scenario",
        choices=SCENARIOS,
        default=None,
        help="Play a single scenario instead of all of them",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    asyncio.run(session.run([args.scenario] if args.scenario else SCENARIOS))


if __name__ == "__main__":
    main()
