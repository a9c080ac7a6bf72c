"""
Shared fixtures.

Every test gets its own in-memory SQLite database and freshly built
services, so no state (or asyncio lock) leaks between event loops.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENABLE_SCHEDULER", "false")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("TURNOVER_POLICY", "inclusive")

import pytest

from app.database import build_engine, build_session_factory, create_tables
from app.services.assignment_service import AssignmentService
from app.services.booking_store import BookingSegmentStore
from app.services.conflict_detector import ConflictDetector
from app.services.kennel_locks import KennelLockManager
from app.services.occupancy_calculator import INCLUSIVE, DayPolicy
from app.services.occupancy_service import OccupancyService
from app.services.reassignment_service import ReassignmentService
from app.services.resource_catalog import ResourceCatalog


@pytest.fixture
async def session_factory():
    """Fresh in-memory database with all tables created"""
    engine = build_engine("sqlite+aiosqlite://")
    await create_tables(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def policy():
    return DayPolicy(INCLUSIVE)


@pytest.fixture
def services(session_factory, policy):
    """The engine's services wired to the test database"""

    class Services:
        pass

    locks = KennelLockManager(redis=None)
    detector = ConflictDetector(policy)
    wired = Services()
    wired.session_factory = session_factory
    wired.locks = locks
    wired.store = BookingSegmentStore(session_factory=session_factory)
    wired.assignments = AssignmentService(session_factory=session_factory, locks=locks, detector=detector)
    wired.reassignments = ReassignmentService(session_factory=session_factory, locks=locks, detector=detector)
    wired.catalog = ResourceCatalog(
        session_factory=session_factory,
        locks=locks,
        reassignment=wired.reassignments,
    )
    wired.occupancy = OccupancyService(session_factory=session_factory, policy=policy)
    return wired


@pytest.fixture
def make_kennel(services):
    async def _make(name="Run", capacity=1, **fields):
        return await services.catalog.create_kennel(name=name, capacity=capacity, **fields)
    return _make


@pytest.fixture
def make_booking(services):
    async def _make(pet_name="Rex", owner_name="Okafor", **fields):
        return await services.store.create_booking(pet_name=pet_name, owner_name=owner_name, **fields)
    return _make
