"""
Integration tests for kennel assignment

Tests assign/unassign against a real (SQLite) database: capacity
enforcement, maintenance, double placement, operation-id replay and
concurrent assignments.
"""

import asyncio
import pytest
from datetime import date

from sqlalchemy import func, select

from app.models import EngineOperation, Segment
from app.models.booking import CANCELLED, CONFIRMED
from app.services.errors import (
    CapacityExceededError,
    ConflictError,
    InactiveResourceError,
    NotFoundError,
    ValidationError,
)

pytestmark = pytest.mark.integration


def day(n):
    return date(2024, 6, n)


async def segment_count(services):
    async with services.session_factory() as session:
        return await session.scalar(select(func.count()).select_from(Segment))


class TestAssign:
    """Test the happy path and capacity rule"""

    @pytest.mark.asyncio
    async def test_assign_then_occupancy(self, services, make_kennel, make_booking):
        """K1 cap 1, booking 1st-3rd: occupied 1 on each day"""
        kennel = await make_kennel("K1", 1)
        booking = await make_booking()

        segment = await services.assignments.assign(booking["id"], kennel["id"], day(1), day(3))

        assert segment["kennel_id"] == kennel["id"]
        assert segment["booking_id"] == booking["id"]
        assert segment["start_date"] == day(1)
        assert segment["end_date"] == day(3)

        result = await services.occupancy.occupancy(day(1), day(3))
        row = result["kennels"][0]
        assert [d["occupied"] for d in row["days"]] == [1, 1, 1]
        assert [d["available"] for d in row["days"]] == [0, 0, 0]

    @pytest.mark.asyncio
    async def test_pending_booking_is_confirmed(self, services, make_kennel, make_booking):
        kennel = await make_kennel()
        booking = await make_booking()
        await services.assignments.assign(booking["id"], kennel["id"], day(1), day(2))

        stored = await services.store.get_booking(booking["id"])
        assert stored["status"] == CONFIRMED
        assert len(stored["segments"]) == 1

    @pytest.mark.asyncio
    async def test_overlap_rejected_when_full(self, services, make_kennel, make_booking):
        """Second booking 3rd-5th overlaps on the 3rd (inclusive policy)"""
        kennel = await make_kennel("K1", 1)
        first = await make_booking(pet_name="A")
        second = await make_booking(pet_name="B")
        await services.assignments.assign(first["id"], kennel["id"], day(1), day(3))

        with pytest.raises(CapacityExceededError) as excinfo:
            await services.assignments.assign(second["id"], kennel["id"], day(3), day(5))

        assert excinfo.value.error_kind == "CapacityExceededError"
        assert await segment_count(services) == 1

    @pytest.mark.asyncio
    async def test_boundary_adjacent_stay_fits(self, services, make_kennel, make_booking):
        kennel = await make_kennel("K1", 1)
        first = await make_booking()
        second = await make_booking()
        await services.assignments.assign(first["id"], kennel["id"], day(1), day(3))
        await services.assignments.assign(second["id"], kennel["id"], day(4), day(6))

        assert await segment_count(services) == 2

    @pytest.mark.asyncio
    async def test_multi_capacity_kennel(self, services, make_kennel, make_booking):
        kennel = await make_kennel("Suite", 2)
        bookings = [await make_booking(pet_name=name) for name in ("A", "B", "C")]

        await services.assignments.assign(bookings[0]["id"], kennel["id"], day(1), day(5))
        await services.assignments.assign(bookings[1]["id"], kennel["id"], day(2), day(3))
        with pytest.raises(CapacityExceededError):
            await services.assignments.assign(bookings[2]["id"], kennel["id"], day(3), day(4))
        await services.assignments.assign(bookings[2]["id"], kennel["id"], day(4), day(4))

    @pytest.mark.asyncio
    async def test_single_day_stay(self, services, make_kennel, make_booking):
        kennel = await make_kennel()
        booking = await make_booking()
        segment = await services.assignments.assign(booking["id"], kennel["id"], day(7), day(7))
        assert segment["start_date"] == segment["end_date"] == day(7)


class TestAssignRejections:
    """Test every rejection leaves state unchanged"""

    @pytest.mark.asyncio
    async def test_invalid_range(self, services, make_kennel, make_booking):
        kennel = await make_kennel()
        booking = await make_booking()
        with pytest.raises(ValidationError):
            await services.assignments.assign(booking["id"], kennel["id"], day(5), day(1))
        assert await segment_count(services) == 0

    @pytest.mark.asyncio
    async def test_unknown_kennel_and_booking(self, services, make_kennel, make_booking):
        kennel = await make_kennel()
        booking = await make_booking()
        with pytest.raises(NotFoundError):
            await services.assignments.assign(booking["id"], "missing", day(1), day(2))
        with pytest.raises(NotFoundError):
            await services.assignments.assign("missing", kennel["id"], day(1), day(2))

    @pytest.mark.asyncio
    async def test_inactive_kennel(self, services, make_kennel, make_booking):
        kennel = await make_kennel()
        booking = await make_booking()
        await services.catalog.set_active(kennel["id"], False)

        with pytest.raises(InactiveResourceError):
            await services.assignments.assign(booking["id"], kennel["id"], day(1), day(2))
        assert await segment_count(services) == 0

    @pytest.mark.asyncio
    async def test_booking_cannot_be_in_two_kennels(self, services, make_kennel, make_booking):
        first_kennel = await make_kennel("K1")
        second_kennel = await make_kennel("K2")
        booking = await make_booking()
        await services.assignments.assign(booking["id"], first_kennel["id"], day(1), day(3))

        with pytest.raises(ValidationError, match="already assigned"):
            await services.assignments.assign(booking["id"], second_kennel["id"], day(3), day(4))

    @pytest.mark.asyncio
    async def test_cancelled_booking(self, services, make_kennel, make_booking):
        kennel = await make_kennel()
        booking = await make_booking()
        await services.store.set_status(booking["id"], CANCELLED)

        with pytest.raises(ValidationError):
            await services.assignments.assign(booking["id"], kennel["id"], day(1), day(2))


class TestOperationReplay:
    """Test deduplication of retried commands"""

    @pytest.mark.asyncio
    async def test_retry_returns_original_segment(self, services, make_kennel, make_booking):
        kennel = await make_kennel()
        booking = await make_booking()

        first = await services.assignments.assign(
            booking["id"], kennel["id"], day(1), day(2), operation_id="op-1"
        )
        again = await services.assignments.assign(
            booking["id"], kennel["id"], day(1), day(2), operation_id="op-1"
        )

        assert again["id"] == first["id"]
        assert await segment_count(services) == 1
        async with services.session_factory() as session:
            operation = await session.get(EngineOperation, "op-1")
        assert operation.segment_id == first["id"]

    @pytest.mark.asyncio
    async def test_operation_id_reused_for_other_command(self, services, make_kennel, make_booking):
        kennel = await make_kennel()
        other = await make_kennel("K2")
        booking = await make_booking()
        segment = await services.assignments.assign(
            booking["id"], kennel["id"], day(1), day(2), operation_id="op-1"
        )

        with pytest.raises(ConflictError):
            await services.reassignments.move(segment["id"], other["id"], day(1), day(2), operation_id="op-1")


class TestUnassign:
    @pytest.mark.asyncio
    async def test_unassign_frees_capacity(self, services, make_kennel, make_booking):
        kennel = await make_kennel()
        first = await make_booking()
        second = await make_booking()
        segment = await services.assignments.assign(first["id"], kennel["id"], day(1), day(3))

        removed = await services.assignments.unassign(segment["id"])
        assert removed["id"] == segment["id"]
        assert await segment_count(services) == 0

        await services.assignments.assign(second["id"], kennel["id"], day(1), day(3))

    @pytest.mark.asyncio
    async def test_unassign_unknown(self, services):
        with pytest.raises(NotFoundError):
            await services.assignments.unassign("missing")


class TestConcurrentAssign:
    """Test two requests racing for the last space"""

    @pytest.mark.asyncio
    async def test_only_one_wins(self, services, make_kennel, make_booking):
        kennel = await make_kennel("K1", 1)
        first = await make_booking()
        second = await make_booking()

        results = await asyncio.gather(
            services.assignments.assign(first["id"], kennel["id"], day(1), day(3)),
            services.assignments.assign(second["id"], kennel["id"], day(2), day(4)),
            return_exceptions=True,
        )

        successes = [r for r in results if isinstance(r, dict)]
        failures = [r for r in results if isinstance(r, CapacityExceededError)]
        assert len(successes) == 1
        assert len(failures) == 1
        assert await segment_count(services) == 1

    @pytest.mark.asyncio
    async def test_capacity_never_exceeded(self, services, make_kennel, make_booking):
        """Occupied never exceeds capacity after a burst of assignments"""
        kennel = await make_kennel("Suite", 3)
        bookings = [await make_booking(pet_name=f"Pet {i}") for i in range(8)]

        await asyncio.gather(
            *(
                services.assignments.assign(b["id"], kennel["id"], day(1 + i % 3), day(4 + i % 3))
                for i, b in enumerate(bookings)
            ),
            return_exceptions=True,
        )

        result = await services.occupancy.occupancy(day(1), day(8))
        assert all(d["occupied"] <= 3 for d in result["kennels"][0]["days"])
