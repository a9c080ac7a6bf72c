"""Integration tests for database schema and models"""
import pytest
from datetime import date

from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError

from app.database import resolve_database_url
from app.models import Booking, Kennel, Segment

pytestmark = pytest.mark.integration


def test_resolve_database_url():
    """Sync driver URLs are rewritten to their async drivers"""
    assert resolve_database_url("postgresql://u:p@db/kennels") == "postgresql+asyncpg://u:p@db/kennels"
    assert resolve_database_url("sqlite:///demo.db") == "sqlite+aiosqlite:///demo.db"
    assert resolve_database_url("sqlite+aiosqlite://") == "sqlite+aiosqlite://"


@pytest.mark.asyncio
async def test_all_tables_exist(session_factory):
    """Verify all engine tables are created"""
    async with session_factory() as session:
        conn = await session.connection()
        tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

    for table in ("kennels", "bookings", "booking_segments", "engine_operations"):
        assert table in tables, f"Table {table} not found in database"


@pytest.mark.asyncio
async def test_segment_range_index_exists(session_factory):
    """Verify the kennel/date index used by range queries"""
    async with session_factory() as session:
        conn = await session.connection()
        indexes = await conn.run_sync(
            lambda sync_conn: inspect(sync_conn).get_indexes("booking_segments")
        )

    assert "idx_segments_kennel_range" in {index["name"] for index in indexes}


@pytest.mark.asyncio
async def test_segment_range_check_constraint(session_factory):
    """A segment ending before it starts is rejected by the database"""
    async with session_factory() as session:
        kennel = Kennel(name="K1")
        booking = Booking()
        session.add_all([kennel, booking])
        await session.flush()
        session.add(Segment(
            booking_id=booking.id,
            kennel_id=kennel.id,
            start_date=date(2024, 6, 5),
            end_date=date(2024, 6, 1),
        ))
        with pytest.raises(IntegrityError):
            await session.commit()


@pytest.mark.asyncio
async def test_kennel_capacity_check_constraint(session_factory):
    async with session_factory() as session:
        session.add(Kennel(name="K0", capacity=0))
        with pytest.raises(IntegrityError):
            await session.commit()
