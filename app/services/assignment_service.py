"""
Kennel Assignment Service

Places a booking into a kennel for a date range. Every check runs against
live database state inside one transaction while the target kennel's lock is
held, so a rejected assignment leaves nothing behind and two simultaneous
assignments cannot both take the last space.
"""
import logging
import time
from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import joinedload, selectinload

from app.database import AsyncSessionLocal
from app.models.booking import Booking, CONFIRMED, PENDING
from app.models.engine_operation import EngineOperation
from app.models.kennel import Kennel
from app.models.segment import Segment
from app.services.booking_store import load_booking
from app.services.conflict_detector import ConflictDetector
from app.services.errors import (
    ConflictError,
    InactiveResourceError,
    NotFoundError,
    ValidationError,
)
from app.services.kennel_locks import KennelLockManager, claim_version, get_lock_manager
from app.services.occupancy_calculator import serialize_segment, validate_range

logger = logging.getLogger(__name__)


def with_booking_segments():
    """Loader option: a segment's booking plus all of that booking's segments."""
    return joinedload(Segment.booking).selectinload(Booking.segments)


async def load_kennel(session: AsyncSession, kennel_id: str, include_archived: bool = False) -> Kennel:
    """
    Fetch a kennel by id.

    Raises:
        NotFoundError: If the kennel does not exist (or is archived)
    """
    kennel = await session.get(Kennel, kennel_id)
    if kennel is None or (kennel.is_archived and not include_archived):
        raise NotFoundError(f"Kennel '{kennel_id}' not found")
    return kennel


async def load_segment(session: AsyncSession, segment_id: str) -> Segment:
    """
    Fetch a segment with its booking and the booking's other segments.

    Raises:
        NotFoundError: If no segment has this id
    """
    result = await session.execute(
        select(Segment).where(Segment.id == segment_id).options(with_booking_segments())
    )
    segment = result.scalars().first()
    if segment is None:
        raise NotFoundError(f"Segment '{segment_id}' not found")
    return segment


async def replay_operation(session: AsyncSession, operation_id: Optional[str], kind: str) -> Optional[Segment]:
    """
    Look up a previously applied command by its caller-supplied id.

    Returns:
        The segment the original command produced, or None if the id is new

    Raises:
        ConflictError: If the id was used for a different kind of command, or
            its segment has since been removed
    """
    if operation_id is None:
        return None
    operation = await session.get(EngineOperation, operation_id)
    if operation is None:
        return None
    if operation.kind != kind:
        raise ConflictError(f"Operation id '{operation_id}' was already used for a {operation.kind} command")
    segment = await session.get(Segment, operation.segment_id)
    if segment is None:
        raise ConflictError(f"Operation '{operation_id}' was applied but its segment no longer exists")
    logger.info(f"Replayed {kind} operation {operation_id} -> segment {segment.id}")
    return segment


def ensure_assignable(kennel: Kennel) -> None:
    if not kennel.is_active:
        raise InactiveResourceError(f"Kennel '{kennel.name}' is in maintenance and cannot take new stays")


class AssignmentService:
    """Creates segments for bookings"""

    def __init__(
        self,
        session_factory: async_sessionmaker = None,
        locks: KennelLockManager = None,
        detector: ConflictDetector = None,
    ):
        self.session_factory = session_factory or AsyncSessionLocal
        self.locks = locks or get_lock_manager()
        self.detector = detector or ConflictDetector()

    async def assign(
        self,
        booking_id: str,
        kennel_id: str,
        start: date,
        end: date,
        operation_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Assign a booking to a kennel for [start, end].

        Args:
            booking_id: Booking to place
            kennel_id: Target kennel
            start: First night of the stay
            end: Last day of the stay (inclusive)
            operation_id: Optional caller id; retrying with the same id returns
                the segment created the first time

        Returns:
            The new segment as a dict

        Raises:
            ValidationError: Bad range, closed booking, or booking already placed
            NotFoundError: Unknown kennel or booking
            InactiveResourceError: Kennel in maintenance
            CapacityExceededError: Kennel full on at least one day
            ConflictError: Concurrent modification detected at commit
        """
        validate_range(start, end)
        start_time = time.time()

        async with self.locks.hold(kennel_id):
            async with self.session_factory() as session:
                replayed = await replay_operation(session, operation_id, "assign")
                if replayed is not None:
                    return serialize_segment(replayed)

                kennel = await load_kennel(session, kennel_id)
                booking = await load_booking(session, booking_id)
                if not booking.is_active:
                    raise ValidationError(f"Booking {booking_id} is {booking.status} and cannot be assigned")

                ensure_assignable(kennel)
                self.detector.ensure_booking_free(booking, start, end)
                await self.detector.ensure_capacity(session, kennel, start, end)

                segment = await self._commit(session, booking, kennel, start, end, operation_id)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Assigned booking {booking_id} to kennel {kennel_id} {start}..{end} "
            f"(segment {segment['id']}, {duration_ms:.2f}ms)"
        )
        return segment

    async def _commit(
        self,
        session: AsyncSession,
        booking: Booking,
        kennel: Kennel,
        start: date,
        end: date,
        operation_id: Optional[str],
    ) -> Dict[str, Any]:
        await claim_version(session, Kennel, kennel)
        await claim_version(session, Booking, booking)

        segment = Segment(kennel_id=kennel.id, start_date=start, end_date=end)
        booking.segments.append(segment)
        if booking.status == PENDING:
            booking.status = CONFIRMED
        if operation_id is not None:
            session.add(EngineOperation(operation_id=operation_id, kind="assign", segment_id=segment.id))

        await session.commit()
        return serialize_segment(segment)

    async def unassign(self, segment_id: str) -> Dict[str, Any]:
        """
        Remove a segment, freeing its kennel for the range.

        Raises:
            NotFoundError: Unknown segment
        """
        async with self.session_factory() as session:
            segment = await load_segment(session, segment_id)
            removed = serialize_segment(segment)
            booking = segment.booking
            await claim_version(session, Booking, booking)
            booking.segments.remove(segment)
            await session.commit()

        logger.info(f"Unassigned segment {segment_id} from kennel {removed['kennel_id']}")
        return removed


# Global service instance
_assignment_service: Optional[AssignmentService] = None


def get_assignment_service() -> AssignmentService:
    """Get or create global AssignmentService instance."""
    global _assignment_service
    if _assignment_service is None:
        _assignment_service = AssignmentService()
    return _assignment_service
