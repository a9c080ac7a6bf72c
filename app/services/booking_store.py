"""
Booking Segment Store

Holds bookings and their ordered segments. Bookings are created by the
calling layer; their segments are only ever created and moved by the
assignment and reassignment services. Cancelling a booking frees its
kennels by removing its segments.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import AsyncSessionLocal
from app.models.booking import (
    Booking,
    BOOKING_STATUSES,
    PENDING,
    CONFIRMED,
    CHECKED_IN,
    CHECKED_OUT,
    CANCELLED,
)
from app.services.errors import NotFoundError, ValidationError
from app.services.kennel_locks import claim_version
from app.services.occupancy_calculator import serialize_segment

logger = logging.getLogger(__name__)

# Allowed status changes; staying in the same status is always a no-op
STATUS_TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {CHECKED_IN, CANCELLED},
    CHECKED_IN: {CHECKED_OUT},
    CHECKED_OUT: set(),
    CANCELLED: set(),
}


def serialize_booking(booking: Booking) -> Dict[str, Any]:
    return {
        "id": booking.id,
        "status": booking.status,
        "pet_name": booking.pet_name,
        "owner_name": booking.owner_name,
        "segments": [serialize_segment(segment) for segment in booking.segments],
    }


async def load_booking(session: AsyncSession, booking_id: str) -> Booking:
    """
    Fetch a booking with its segments.

    Raises:
        NotFoundError: If no booking has this id
    """
    booking = await session.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError(f"Booking '{booking_id}' not found")
    return booking


class BookingSegmentStore:
    """Create, read and change the status of bookings"""

    def __init__(self, session_factory: async_sessionmaker = None):
        self.session_factory = session_factory or AsyncSessionLocal

    async def create_booking(
        self,
        status: str = PENDING,
        pet_name: Optional[str] = None,
        owner_name: Optional[str] = None,
        booking_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Register a booking without any kennel placement.

        Raises:
            ValidationError: Unknown status, or a booking created already closed
        """
        if status not in BOOKING_STATUSES:
            raise ValidationError(f"Invalid booking status: {status}. Must be one of: {BOOKING_STATUSES}")
        if status in (CHECKED_OUT, CANCELLED):
            raise ValidationError(f"A new booking cannot start as {status}")

        async with self.session_factory() as session:
            if booking_id is not None and await session.get(Booking, booking_id) is not None:
                raise ValidationError(f"Booking '{booking_id}' already exists")

            booking = Booking(status=status, pet_name=pet_name, owner_name=owner_name)
            if booking_id is not None:
                booking.id = booking_id
            session.add(booking)
            await session.commit()

            logger.debug(f"Created booking {booking.id} ({status})")
            return serialize_booking(booking)

    async def get_booking(self, booking_id: str) -> Dict[str, Any]:
        async with self.session_factory() as session:
            return serialize_booking(await load_booking(session, booking_id))

    async def list_bookings(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """All bookings (optionally filtered by status) with nested segments."""
        if status is not None and status not in BOOKING_STATUSES:
            raise ValidationError(f"Invalid booking status: {status}. Must be one of: {BOOKING_STATUSES}")

        async with self.session_factory() as session:
            stmt = select(Booking).order_by(Booking.created_at, Booking.id)
            if status is not None:
                stmt = stmt.where(Booking.status == status)
            result = await session.execute(stmt)
            return [serialize_booking(booking) for booking in result.scalars().all()]

    async def set_status(self, booking_id: str, status: str) -> Dict[str, Any]:
        """
        Move a booking through its lifecycle.

        Cancelling removes every segment of the booking. Checking out keeps
        them as history; they simply stop counting toward occupancy.

        Raises:
            NotFoundError: Unknown booking
            ValidationError: Unknown status or illegal transition
        """
        if status not in BOOKING_STATUSES:
            raise ValidationError(f"Invalid booking status: {status}. Must be one of: {BOOKING_STATUSES}")

        async with self.session_factory() as session:
            booking = await load_booking(session, booking_id)
            if booking.status == status:
                return serialize_booking(booking)

            if status not in STATUS_TRANSITIONS[booking.status]:
                raise ValidationError(f"Cannot change booking {booking_id} from {booking.status} to {status}")

            await claim_version(session, Booking, booking)
            previous = booking.status
            booking.status = status
            if status == CANCELLED:
                released = len(booking.segments)
                booking.segments.clear()
                logger.info(f"Booking {booking_id} cancelled, released {released} segment(s)")

            await session.commit()
            logger.info(f"Booking {booking_id}: {previous} -> {status}")
            return serialize_booking(booking)


# Global store instance
_booking_store: Optional[BookingSegmentStore] = None


def get_booking_store() -> BookingSegmentStore:
    """Get or create global BookingSegmentStore instance."""
    global _booking_store
    if _booking_store is None:
        _booking_store = BookingSegmentStore()
    return _booking_store
