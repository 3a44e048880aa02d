from sqlalchemy import Column, DateTime, func

from receiptlens.database.connection import Base  # Re-export Base


class TimestampMixin:
    """Mixin adding a created_at column. Rows are never updated after insert."""
    created_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)
