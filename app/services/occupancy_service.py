"""
Occupancy Query Service

Read side of the kennel board. Loads the kennel catalog and the active
segments touching a window in two queries, indexes them, and hands them to
the occupancy calculator and aggregation view.
"""
import logging
import time
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Set, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import contains_eager

from app import config
from app.database import AsyncSessionLocal
from app.models.booking import Booking, INACTIVE_BOOKING_STATUSES
from app.models.kennel import Kennel
from app.models.segment import Segment
from app.services import aggregation_view
from app.services.errors import ValidationError
from app.services.occupancy_calculator import (
    DayPolicy,
    SegmentIndex,
    get_day_policy,
    kennel_range_occupancy,
    kennel_status,
    occupied_on,
    utilization_bucket,
    utilization_percent,
    validate_range,
)
from app.services.resource_catalog import serialize_kennel

logger = logging.getLogger(__name__)


def ensure_window(start: date, end: date, max_days: int, label: str) -> None:
    """
    Validate a query window and cap its width.

    Raises:
        ValidationError: If start > end or the window spans more than max_days days
    """
    validate_range(start, end)
    if end - start >= timedelta(days=max_days):
        raise ValidationError(f"{label} range is limited to {max_days} days")


class OccupancyService:
    """Occupancy, utilization and heatmap queries over live data"""

    def __init__(self, session_factory: async_sessionmaker = None, policy: Optional[DayPolicy] = None):
        self.session_factory = session_factory or AsyncSessionLocal
        self.policy = policy or get_day_policy()

    async def _load(self, session: AsyncSession, start: date, end: date) -> Tuple[List[Kennel], SegmentIndex]:
        kennel_result = await session.execute(
            select(Kennel).where(Kennel.archived_at.is_(None)).order_by(Kennel.name, Kennel.id)
        )
        kennels = list(kennel_result.scalars().all())

        segment_result = await session.execute(
            select(Segment)
            .join(Segment.booking)
            .options(contains_eager(Segment.booking))
            .where(
                Segment.start_date <= end,
                Segment.end_date >= start,
                Booking.status.not_in(INACTIVE_BOOKING_STATUSES),
            )
        )
        index = SegmentIndex(segment_result.scalars().all(), self.policy)
        return kennels, index

    async def _kennels_with_future_stays(self, session: AsyncSession, day: date) -> Set[str]:
        result = await session.execute(
            select(Segment.kennel_id)
            .join(Segment.booking)
            .where(
                Segment.start_date > day,
                Booking.status.not_in(INACTIVE_BOOKING_STATUSES),
            )
            .distinct()
        )
        return set(result.scalars().all())

    async def occupancy(self, start: date, end: Optional[date] = None) -> Dict[str, Any]:
        """
        Occupancy per kennel over [start, end] plus facility totals.

        Per-kennel ``occupied`` is the busiest day in the window; ``days``
        holds the day-by-day figures.

        Raises:
            ValidationError: Bad range, or wider than MAX_OCCUPANCY_DAYS
        """
        end = end or start
        ensure_window(start, end, config.MAX_OCCUPANCY_DAYS, "Occupancy")
        start_time = time.time()

        async with self.session_factory() as session:
            kennels, index = await self._load(session, start, end)

        rows = [kennel_range_occupancy(kennel, index, start, end) for kennel in kennels]
        total_capacity = sum(row["capacity"] for row in rows)
        total_occupied = sum(row["occupied"] for row in rows)
        overall = utilization_percent(total_occupied, total_capacity)

        duration_ms = (time.time() - start_time) * 1000
        logger.debug(
            f"Occupancy {start}..{end}: {len(kennels)} kennels, {len(index)} segments, {duration_ms:.2f}ms"
        )
        return {
            "range": {"start": start, "end": end},
            "kennels": rows,
            "summary": {
                "total_capacity": total_capacity,
                "total_occupied": total_occupied,
                "total_available": max(total_capacity - total_occupied, 0),
                "overall_utilization_percent": overall,
                "bucket": utilization_bucket(overall),
            },
        }

    async def kennel_board(
        self,
        day: date,
        search: Optional[str] = None,
        status: str = "ALL",
        kennel_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Kennel cards for one day: catalog fields plus occupancy and display status."""
        async with self.session_factory() as session:
            kennels, index = await self._load(session, day, day)
            upcoming = await self._kennels_with_future_stays(session, day)

        kennels = aggregation_view.filter_kennels(kennels, search=search, status=status, kennel_type=kennel_type)
        occupied = occupied_on(kennels, index, day)

        board = []
        for kennel in kennels:
            count = occupied[kennel.id]
            card = serialize_kennel(kennel)
            card.update({
                "occupied": count,
                "available": max(kennel.capacity - count, 0),
                "utilization_percent": utilization_percent(count, kennel.capacity),
                "status": kennel_status(kennel, count, has_future=kennel.id in upcoming),
            })
            board.append(card)
        return board

    async def locations(self, day: date) -> Dict[str, Any]:
        async with self.session_factory() as session:
            kennels, index = await self._load(session, day, day)
        occupied = occupied_on(kennels, index, day)
        return {
            "date": day,
            "groups": aggregation_view.group_by_location(kennels, occupied),
            "summary": aggregation_view.facility_summary(kennels, occupied),
        }

    async def types(self, day: date) -> Dict[str, Any]:
        async with self.session_factory() as session:
            kennels, index = await self._load(session, day, day)
        occupied = occupied_on(kennels, index, day)
        return {"date": day, "types": aggregation_view.type_breakdown(kennels, occupied)}

    async def heatmap(self, start: date, end: date) -> Dict[str, Any]:
        """
        Kennel-by-day utilization grid.

        Raises:
            ValidationError: Bad range, or wider than MAX_HEATMAP_DAYS
        """
        ensure_window(start, end, config.MAX_HEATMAP_DAYS, "Heatmap")

        async with self.session_factory() as session:
            kennels, index = await self._load(session, start, end)
        return {
            "range": {"start": start, "end": end},
            "rows": aggregation_view.heatmap(kennels, index, start, end),
        }


# Global service instance
_occupancy_service: Optional[OccupancyService] = None


def get_occupancy_service() -> OccupancyService:
    """Get or create global OccupancyService instance."""
    global _occupancy_service
    if _occupancy_service is None:
        _occupancy_service = OccupancyService()
    return _occupancy_service
