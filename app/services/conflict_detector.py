"""
Capacity Conflict Detector

Decides whether placing one more stay on a kennel for a date range would
oversell it, and whether a booking would end up in two places at once.

The decision functions are pure; ``ConflictDetector`` feeds them the live
segments read inside the caller's transaction.
"""
import logging
from datetime import date
from typing import Any, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager

from app.models.booking import Booking, INACTIVE_BOOKING_STATUSES
from app.models.segment import Segment
from app.services.errors import CapacityExceededError, ValidationError
from app.services.occupancy_calculator import DayPolicy, count_by_day, get_day_policy, validate_range

logger = logging.getLogger(__name__)


def would_exceed_capacity(
    kennel: Any,
    segments: Iterable[Any],
    start: date,
    end: date,
    exclude_segment_id: Optional[str] = None,
    policy: Optional[DayPolicy] = None,
) -> bool:
    """
    True if adding one stay on ``kennel`` over [start, end] exceeds capacity.

    Args:
        kennel: Target kennel (id, capacity)
        segments: Candidate segments; only active ones on this kennel count
        start: First day of the proposed stay
        end: Last day of the proposed stay
        exclude_segment_id: Segment to ignore, i.e. the one being moved
        policy: Day-coverage policy

    Returns:
        bool: True if any day in the proposed stay would be over capacity
    """
    validate_range(start, end)
    policy = policy or get_day_policy()
    first, last = policy.covered_days(start, end)

    relevant = [
        segment for segment in segments
        if segment.kennel_id == kennel.id
        and segment.id != exclude_segment_id
        and segment.is_active
    ]
    counts = count_by_day(relevant, first, last, policy)
    return any(count + 1 > kennel.capacity for count in counts)


def find_booking_overlap(
    segments: Iterable[Any],
    booking_id: str,
    start: date,
    end: date,
    exclude_segment_id: Optional[str] = None,
    policy: Optional[DayPolicy] = None,
) -> Optional[Any]:
    """Return an active segment of ``booking_id`` overlapping [start, end], if any."""
    policy = policy or get_day_policy()
    for segment in segments:
        if segment.booking_id != booking_id or segment.id == exclude_segment_id:
            continue
        if not segment.is_active:
            continue
        if policy.overlaps(segment.start_date, segment.end_date, start, end):
            return segment
    return None


class ConflictDetector:
    """Runs the capacity and double-placement checks against live database state"""

    def __init__(self, policy: Optional[DayPolicy] = None):
        self.policy = policy or get_day_policy()

    async def load_kennel_segments(
        self,
        session: AsyncSession,
        kennel_id: str,
        start: date,
        end: date,
    ) -> List[Segment]:
        """Active segments on a kennel whose stored range touches [start, end]."""
        stmt = (
            select(Segment)
            .join(Segment.booking)
            .options(contains_eager(Segment.booking))
            .where(
                Segment.kennel_id == kennel_id,
                Segment.start_date <= end,
                Segment.end_date >= start,
                Booking.status.not_in(INACTIVE_BOOKING_STATUSES),
            )
            .order_by(Segment.start_date, Segment.id)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def would_exceed_capacity(
        self,
        session: AsyncSession,
        kennel: Any,
        start: date,
        end: date,
        exclude_segment_id: Optional[str] = None,
    ) -> bool:
        segments = await self.load_kennel_segments(session, kennel.id, start, end)
        return would_exceed_capacity(
            kennel, segments, start, end,
            exclude_segment_id=exclude_segment_id,
            policy=self.policy,
        )

    async def ensure_capacity(
        self,
        session: AsyncSession,
        kennel: Any,
        start: date,
        end: date,
        exclude_segment_id: Optional[str] = None,
    ) -> None:
        """
        Raise CapacityExceededError if the stay does not fit.

        Raises:
            CapacityExceededError: If any day would exceed kennel capacity
        """
        if await self.would_exceed_capacity(session, kennel, start, end, exclude_segment_id):
            logger.info(
                f"Capacity rejected: kennel={kennel.id} capacity={kennel.capacity} "
                f"range={start}..{end} exclude={exclude_segment_id}"
            )
            raise CapacityExceededError(
                f"Kennel '{kennel.name}' is at capacity ({kennel.capacity}) "
                f"for at least one day between {start} and {end}"
            )

    def ensure_booking_free(
        self,
        booking: Booking,
        start: date,
        end: date,
        exclude_segment_id: Optional[str] = None,
    ) -> None:
        """
        Raise ValidationError if the booking is already placed during [start, end].

        Raises:
            ValidationError: If another active segment of the booking overlaps
        """
        if not booking.is_active:
            return
        clash = find_booking_overlap(
            booking.segments, booking.id, start, end,
            exclude_segment_id=exclude_segment_id,
            policy=self.policy,
        )
        if clash is not None:
            raise ValidationError(
                f"Booking {booking.id} is already assigned to kennel {clash.kennel_id} "
                f"from {clash.start_date} to {clash.end_date}"
            )
