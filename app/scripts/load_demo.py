"""
Demo Scenario Loader

Loads pre-configured kennel board scenarios for consistent presentations.
Usage: python -m app.scripts.load_demo --scenario busy_weekend
"""
import asyncio
import argparse
from datetime import date, timedelta
from typing import Any, Dict, List

from sqlalchemy import text
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.database import AsyncSessionLocal, create_tables
from app.services.assignment_service import AssignmentService
from app.services.booking_store import BookingSegmentStore
from app.services.kennel_locks import KennelLockManager
from app.services.resource_catalog import ResourceCatalog

FACILITY = [
    # (name, capacity, building, floor, kennel_type, size)
    ("North 1", 1, "North Wing", "Ground", "KENNEL", "SMALL"),
    ("North 2", 1, "North Wing", "Ground", "KENNEL", "MEDIUM"),
    ("North 3", 2, "North Wing", "Ground", "RUN", "LARGE"),
    ("North Suite", 2, "North Wing", "Upper", "SUITE", "LARGE"),
    ("Cattery A", 4, "Cattery", "Main Floor", "CABIN", "SMALL"),
    ("Cattery B", 4, "Cattery", "Main Floor", "CABIN", "SMALL"),
    ("Isolation", 1, None, None, "KENNEL", "MEDIUM"),
]

PETS = [
    ("Biscuit", "Alvarez"), ("Mochi", "Chen"), ("Rex", "Okafor"), ("Luna", "Schmidt"),
    ("Pepper", "Nakamura"), ("Olive", "Brennan"), ("Milo", "Haddad"), ("Juniper", "Kowalski"),
    ("Ziggy", "Moreau"), ("Hazel", "Patel"),
]


class DemoFacility:
    """Services bound to one database, plus the kennels created so far"""

    def __init__(self, session_factory: async_sessionmaker):
        locks = KennelLockManager()
        self.catalog = ResourceCatalog(session_factory=session_factory, locks=locks)
        self.store = BookingSegmentStore(session_factory=session_factory)
        self.assignments = AssignmentService(session_factory=session_factory, locks=locks)
        self.kennels: Dict[str, Dict[str, Any]] = {}

    async def build(self) -> None:
        for name, capacity, building, floor, kennel_type, size in FACILITY:
            kennel = await self.catalog.create_kennel(
                name=name,
                capacity=capacity,
                building=building,
                floor=floor,
                kennel_type=kennel_type,
                size=size,
            )
            self.kennels[name] = kennel
        print(f"  Created {len(self.kennels)} kennels")

    async def stay(self, pet: int, kennel: str, start: date, nights: int) -> Dict[str, Any]:
        pet_name, owner_name = PETS[pet % len(PETS)]
        booking = await self.store.create_booking(pet_name=pet_name, owner_name=owner_name)
        await self.assignments.assign(
            booking["id"], self.kennels[kennel]["id"], start, start + timedelta(days=nights)
        )
        return booking


async def clear_demo_data(session_factory: async_sessionmaker = None):
    """Clear all existing data"""
    async with (session_factory or AsyncSessionLocal)() as session:
        tables = ["engine_operations", "booking_segments", "bookings", "kennels"]
        for table in tables:
            await session.execute(text(f"DELETE FROM {table}"))
        await session.commit()
    print("✓ Cleared existing data")


async def load_busy_weekend_scenario(facility: DemoFacility, today: date) -> List[Dict[str, Any]]:
    """
    Load Busy Weekend scenario.

    Scenario: the North Wing is full over the coming weekend, the cattery is
    partly booked.
    """
    print("\nLoading Busy Weekend scenario...")
    saturday = today + timedelta(days=(5 - today.weekday()) % 7)
    bookings = [
        await facility.stay(0, "North 1", saturday - timedelta(days=1), 3),
        await facility.stay(1, "North 2", saturday, 2),
        await facility.stay(2, "North 3", saturday, 1),
        await facility.stay(3, "North 3", saturday - timedelta(days=2), 4),
        await facility.stay(4, "North Suite", saturday, 2),
        await facility.stay(5, "North Suite", saturday, 2),
        await facility.stay(6, "Cattery A", saturday, 6),
        await facility.stay(7, "Cattery A", saturday, 3),
        await facility.stay(8, "Cattery B", saturday + timedelta(days=1), 2),
        await facility.stay(9, "Cattery B", saturday, 1),
    ]
    print(f"  Created {len(bookings)} bookings around {saturday}")
    print("  Expected: North Wing FULL on Saturday, cattery partly booked")
    return bookings


async def load_maintenance_scenario(facility: DemoFacility, today: date) -> List[Dict[str, Any]]:
    """
    Load Maintenance scenario.

    Scenario: North 3 goes into maintenance while a pet is still staying in
    it; the stay remains on the board but no new assignments are accepted.
    """
    print("\nLoading Maintenance scenario...")
    bookings = [
        await facility.stay(0, "North 3", today - timedelta(days=1), 3),
        await facility.stay(1, "North 1", today, 2),
    ]
    await facility.catalog.set_active(facility.kennels["North 3"]["id"], False)
    print("  North 3 set to maintenance with 1 current stay")
    return bookings


async def load_split_stay_scenario(facility: DemoFacility, today: date) -> List[Dict[str, Any]]:
    """
    Load Split Stay scenario.

    Scenario: one long stay spans two kennels (moved to the suite halfway).
    """
    print("\nLoading Split Stay scenario...")
    booking = await facility.stay(2, "North 2", today, 3)
    await facility.assignments.assign(
        booking["id"],
        facility.kennels["North Suite"]["id"],
        today + timedelta(days=4),
        today + timedelta(days=8),
    )
    print("  Created 1 booking split across North 2 and North Suite")
    return [await facility.store.get_booking(booking["id"])]


SCENARIOS = {
    "busy_weekend": load_busy_weekend_scenario,
    "maintenance": load_maintenance_scenario,
    "split_stay": load_split_stay_scenario,
}


async def load_scenario(
    scenario_name: str,
    session_factory: async_sessionmaker = None,
    today: date = None,
) -> List[Dict[str, Any]]:
    """
    Load a demo scenario.

    Args:
        scenario_name: Name of scenario to load
        session_factory: Database to load into (default: configured database)
        today: Reference day for the scenario (default: today)

    Returns:
        The bookings created by the scenario
    """
    if scenario_name not in SCENARIOS:
        print(f"ERROR: Unknown scenario '{scenario_name}'")
        print(f"Available scenarios: {', '.join(SCENARIOS.keys())}")
        return []

    session_factory = session_factory or AsyncSessionLocal
    today = today or date.today()

    # Clear existing data
    await clear_demo_data(session_factory)

    facility = DemoFacility(session_factory)
    await facility.build()
    bookings = await SCENARIOS[scenario_name](facility, today)

    print(f"\n✅ Scenario '{scenario_name}' loaded successfully!")
    print("Demo is ready for presentation")
    return bookings


async def _run(scenario_name: str, create: bool):
    if create:
        await create_tables()
    await load_scenario(scenario_name)


def main():
    """CLI entry point"""
    parser = argparse.ArgumentParser(description="Load demo scenarios")
    parser.add_argument(
        "--scenario",
        "-s",
        choices=sorted(SCENARIOS),
        required=True,
        help="Scenario to load"
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before loading"
    )

    args = parser.parse_args()
    asyncio.run(_run(args.scenario, args.create_tables))


if __name__ == "__main__":
    main()
