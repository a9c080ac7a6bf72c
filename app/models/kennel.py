"""Kennel model - Finite-capacity boarding resource"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, JSON, CheckConstraint, Index
from sqlalchemy.sql import func
import uuid

from app.database import Base

DEFAULT_BUILDING = "General"
DEFAULT_FLOOR = "Main Floor"

KENNEL_TYPES = ("KENNEL", "SUITE", "CABIN", "RUN")
KENNEL_SIZES = ("SMALL", "MEDIUM", "LARGE", "XLARGE")


class Kennel(Base):
    """Physical kennel (run, suite, cabin) hosting up to `capacity` pets at once"""

    __tablename__ = "kennels"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(120), nullable=False)
    capacity = Column(Integer, CheckConstraint("capacity >= 1"), nullable=False, default=1)
    building = Column(String(120), nullable=True)
    floor = Column(String(120), nullable=True)
    kennel_type = Column(String(20), nullable=False, default="KENNEL")
    size = Column(String(20), nullable=True)
    special_handling = Column(Boolean, nullable=False, default=False)
    amenities = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Indexes for performance
    __table_args__ = (
        Index("idx_kennels_location", "building", "floor"),
        Index("idx_kennels_archived", "archived_at"),
    )

    def __init__(self, **kwargs):
        # Column defaults only apply at flush; transient kennels need them too
        kwargs.setdefault("id", str(uuid.uuid4()))
        kwargs.setdefault("capacity", 1)
        kwargs.setdefault("kennel_type", "KENNEL")
        kwargs.setdefault("special_handling", False)
        kwargs.setdefault("amenities", [])
        kwargs.setdefault("is_active", True)
        kwargs.setdefault("version", 0)
        super().__init__(**kwargs)

    @property
    def location_building(self) -> str:
        return self.building or DEFAULT_BUILDING

    @property
    def location_floor(self) -> str:
        return self.floor or DEFAULT_FLOOR

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    def __repr__(self):
        return f"<Kennel(id={self.id}, name={self.name}, capacity={self.capacity}, active={self.is_active})>"
