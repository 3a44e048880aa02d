from .base import Base, TimestampMixin  # Re-export Base and TimestampMixin
from .receipt import Receipt
from .ingestion_error import IngestionError

__all__ = ["Base", "TimestampMixin", "Receipt", "IngestionError"]
