"""SQLAlchemy ORM Models for the kennel board schema"""
from app.models.kennel import Kennel
from app.models.booking import Booking
from app.models.segment import Segment
from app.models.engine_operation import EngineOperation

__all__ = [
    "Kennel",
    "Booking",
    "Segment",
    "EngineOperation",
]
