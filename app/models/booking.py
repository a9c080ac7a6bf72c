"""Booking model - Customer reservation decomposed into kennel segments"""
from sqlalchemy import Column, String, Integer, DateTime, CheckConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from app.database import Base

PENDING = "PENDING"
CONFIRMED = "CONFIRMED"
CHECKED_IN = "CHECKED_IN"
CHECKED_OUT = "CHECKED_OUT"
CANCELLED = "CANCELLED"

BOOKING_STATUSES = (PENDING, CONFIRMED, CHECKED_IN, CHECKED_OUT, CANCELLED)

# Segments of bookings in these states no longer occupy a kennel
INACTIVE_BOOKING_STATUSES = frozenset({CHECKED_OUT, CANCELLED})


class Booking(Base):
    """Reservation for one pet; owns an ordered list of segments"""

    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    status = Column(
        String(20),
        CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'CHECKED_IN', 'CHECKED_OUT', 'CANCELLED')",
            name="check_booking_status",
        ),
        nullable=False,
        default=PENDING,
    )
    pet_name = Column(String(120), nullable=True)
    owner_name = Column(String(200), nullable=True)
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    segments = relationship(
        "Segment",
        back_populates="booking",
        order_by="[Segment.start_date, Segment.id]",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_bookings_status", "status"),
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("id", str(uuid.uuid4()))
        kwargs.setdefault("status", PENDING)
        # Loaded empty so serializing after commit never triggers a lazy load
        kwargs.setdefault("segments", [])
        kwargs.setdefault("version", 0)
        super().__init__(**kwargs)

    @property
    def is_active(self) -> bool:
        return self.status not in INACTIVE_BOOKING_STATUSES

    def __repr__(self):
        return f"<Booking(id={self.id}, status={self.status}, pet={self.pet_name})>"
