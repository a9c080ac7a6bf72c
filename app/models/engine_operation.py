"""EngineOperation model - Caller-supplied operation ids for deduplicating retried commands"""
from sqlalchemy import Column, String, DateTime, Index
from sqlalchemy.sql import func

from app.database import Base


class EngineOperation(Base):
    """Record of an applied assign/move command keyed by the caller's operation id"""

    __tablename__ = "engine_operations"

    operation_id = Column(String(100), primary_key=True)
    kind = Column(String(20), nullable=False)
    segment_id = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_engine_operations_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<EngineOperation(operation_id={self.operation_id}, kind={self.kind}, segment={self.segment_id})>"
