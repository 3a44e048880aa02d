import logging
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from receiptlens.database.models import IngestionError, Receipt
from receiptlens.exceptions import StoreFailure

logger = logging.getLogger(__name__)


class ReceiptStore:
    """Receipt collection backed by the `receipts` table.

    Every call runs in its own session and transaction, so one ingestion's
    write never shares state with another's.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    async def insert(self, document: Dict[str, Any]) -> int:
        """Persists a validated receipt document and returns its new id."""
        receipt = Receipt(
            store_name=document["store_name"],
            location=document.get("location"),
            date=document["date"],
            subtotal=document.get("subtotal"),
            tax=document.get("tax"),
            total=document["total"],
            items=document.get("items") or [],
            image_path=document["image_path"],
            created_at=document["created_at"],
        )
        try:
            async with self._session_factory() as session:
                session.add(receipt)
                await session.commit()
                return receipt.id
        except SQLAlchemyError as e:
            raise StoreFailure(f"Failed to store receipt: {e}") from e

    async def list_all(self) -> List[Dict[str, Any]]:
        """Returns every stored receipt as a plain document."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(Receipt).order_by(Receipt.id))
                return [receipt.to_document() for receipt in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreFailure(f"Failed to read receipts: {e}") from e


class ErrorLog:
    """Append-only log of failed ingestion attempts."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    async def insert(self, record: Dict[str, Any]) -> int:
        entry = IngestionError(
            file_path=record["file_path"],
            error=record["error"],
            timestamp=record["timestamp"],
        )
        try:
            async with self._session_factory() as session:
                session.add(entry)
                await session.commit()
                return entry.id
        except SQLAlchemyError as e:
            raise StoreFailure(f"Failed to store ingestion error: {e}") from e
