"""Segment model - One booking's stay in one kennel for a contiguous date range"""
from sqlalchemy import Column, String, Date, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from app.database import Base


class Segment(Base):
    """Atomic schedulable unit: booking -> kennel for [start_date, end_date]"""

    __tablename__ = "booking_segments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_id = Column(
        String(36),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
    )
    kennel_id = Column(
        String(36),
        ForeignKey("kennels.id", ondelete="RESTRICT"),
        nullable=False,
    )
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    booking = relationship("Booking", back_populates="segments", lazy="joined")

    # Indexes for performance
    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="check_segment_range"),
        Index("idx_segments_kennel_range", "kennel_id", "start_date", "end_date"),
        Index("idx_segments_booking", "booking_id"),
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("id", str(uuid.uuid4()))
        super().__init__(**kwargs)

    @property
    def is_active(self) -> bool:
        """True while the owning booking still occupies the kennel."""
        return self.booking is not None and self.booking.is_active

    def __repr__(self):
        return (
            f"<Segment(id={self.id}, booking={self.booking_id}, kennel={self.kennel_id}, "
            f"{self.start_date}..{self.end_date})>"
        )
