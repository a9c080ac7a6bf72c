"""
Kennel Reassignment Service

Moves an existing segment to another kennel and/or date range (the
drag-and-drop path of the board). The segment's kennel and dates change in a
single commit; if any check fails it keeps its old placement untouched.
"""
import logging
import time
from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import AsyncSessionLocal
from app.models.booking import Booking
from app.models.engine_operation import EngineOperation
from app.models.kennel import Kennel
from app.models.segment import Segment
from app.services.assignment_service import ensure_assignable, load_kennel, load_segment, replay_operation
from app.services.conflict_detector import ConflictDetector
from app.services.errors import ValidationError
from app.services.kennel_locks import KennelLockManager, claim_version, get_lock_manager
from app.services.occupancy_calculator import serialize_segment, validate_range

logger = logging.getLogger(__name__)


class ReassignmentService:
    """Moves segments between kennels and dates"""

    def __init__(
        self,
        session_factory: async_sessionmaker = None,
        locks: KennelLockManager = None,
        detector: ConflictDetector = None,
    ):
        self.session_factory = session_factory or AsyncSessionLocal
        self.locks = locks or get_lock_manager()
        self.detector = detector or ConflictDetector()

    async def move(
        self,
        segment_id: str,
        new_kennel_id: str,
        new_start: date,
        new_end: date,
        operation_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Move a segment to ``new_kennel_id`` for [new_start, new_end].

        Moving a segment onto its current kennel and dates succeeds without
        writing anything, which makes "re-validate, then reissue the same
        target" a safe retry.

        Returns:
            The segment as a dict, after the move

        Raises:
            ValidationError: Bad range, closed booking, or booking overlap
            NotFoundError: Unknown segment or target kennel
            InactiveResourceError: Target kennel in maintenance
            CapacityExceededError: Target kennel full on at least one day
            ConflictError: Concurrent modification detected at commit
        """
        validate_range(new_start, new_end)
        start_time = time.time()

        async with self.locks.hold(new_kennel_id):
            async with self.session_factory() as session:
                replayed = await replay_operation(session, operation_id, "move")
                if replayed is not None:
                    return serialize_segment(replayed)

                segment = await load_segment(session, segment_id)
                if (
                    segment.kennel_id == new_kennel_id
                    and segment.start_date == new_start
                    and segment.end_date == new_end
                ):
                    logger.debug(f"Move of segment {segment_id} is a no-op")
                    return serialize_segment(segment)

                previous = (segment.kennel_id, segment.start_date, segment.end_date)
                target = await load_kennel(session, new_kennel_id)
                await self.apply_move(session, segment, target, new_start, new_end)

                if operation_id is not None:
                    session.add(EngineOperation(operation_id=operation_id, kind="move", segment_id=segment.id))
                await session.commit()
                moved = serialize_segment(segment)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Moved segment {segment_id} from kennel {previous[0]} {previous[1]}..{previous[2]} "
            f"to kennel {new_kennel_id} {new_start}..{new_end} ({duration_ms:.2f}ms)"
        )
        return moved

    async def apply_move(
        self,
        session: AsyncSession,
        segment: Segment,
        target: Kennel,
        new_start: date,
        new_end: date,
    ) -> None:
        """
        Validate and stage a move inside an open transaction (no commit).

        The caller must hold the target kennel's lock. The change is flushed
        so later checks in the same transaction see it.
        """
        booking = segment.booking
        if not booking.is_active:
            raise ValidationError(f"Booking {booking.id} is {booking.status}; its segments cannot be moved")

        ensure_assignable(target)
        self.detector.ensure_booking_free(booking, new_start, new_end, exclude_segment_id=segment.id)
        await self.detector.ensure_capacity(session, target, new_start, new_end, exclude_segment_id=segment.id)

        await claim_version(session, Kennel, target)
        await claim_version(session, Booking, booking)

        # Kennel and dates change together in one flush
        segment.kennel_id = target.id
        segment.start_date = new_start
        segment.end_date = new_end
        await session.flush()


# Global service instance
_reassignment_service: Optional[ReassignmentService] = None


def get_reassignment_service() -> ReassignmentService:
    """Get or create global ReassignmentService instance."""
    global _reassignment_service
    if _reassignment_service is None:
        _reassignment_service = ReassignmentService()
    return _reassignment_service
