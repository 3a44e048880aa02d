import datetime
import logging
import mimetypes
from typing import Optional

from receiptlens.exceptions import ExtractionFailure, ReceiptIngestionError
from receiptlens.external_apis.openai_client import build_receipt_parsing_prompt
from receiptlens.schemas.receipt_schemas import BlobFinalizedEvent, IngestionOutcome
from receiptlens.services.receipt_store import ErrorLog, ReceiptStore
from receiptlens.services.receipt_validation import (
    parse_structured_response,
    validate_receipt_document,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class ReceiptIngestionPipeline:
    """
    Turns a newly uploaded receipt image into a stored Receipt.

    Collaborators are built once at startup and shared by every event:
      blob_store            download(bucket, path) / delete(bucket, path)
      text_extractor        detect_text(image_bytes) -> str
      structured_extractor  generate(prompt) -> str (JSON text)

    Failures never escape process_event. They are written to the error log
    and the event is acknowledged, so the trigger never retries.
    """

    def __init__(
        self,
        blob_store,
        text_extractor,
        structured_extractor,
        receipt_store: ReceiptStore,
        error_log: ErrorLog,
        watched_bucket: Optional[str] = None,
    ):
        self.blob_store = blob_store
        self.text_extractor = text_extractor
        self.structured_extractor = structured_extractor
        self.receipt_store = receipt_store
        self.error_log = error_log
        self.watched_bucket = watched_bucket

    def _is_image(self, event: BlobFinalizedEvent) -> bool:
        content_type = event.content_type
        if not content_type:
            content_type, _ = mimetypes.guess_type(event.path)
        return bool(content_type) and content_type.startswith("image/")

    async def process_event(self, event: BlobFinalizedEvent) -> IngestionOutcome:
        file_path = event.path

        if self.watched_bucket and event.bucket != self.watched_bucket:
            logger.info(f"Ignoring {file_path}: bucket {event.bucket} is not watched.")
            return IngestionOutcome(status="skipped")
        if not self._is_image(event):
            logger.info(f"File {file_path} is not an image ({event.content_type}).")
            return IngestionOutcome(status="skipped")

        try:
            receipt_id = await self._ingest(event)
        except ReceiptIngestionError as e:
            logger.error(f"Error processing receipt {file_path}: {e}")
            await self._record_failure(file_path, str(e))
            return IngestionOutcome(status="failed", error=str(e))
        except Exception as e:
            logger.exception(f"Unexpected error processing receipt {file_path}: {e}")
            await self._record_failure(file_path, str(e) or type(e).__name__)
            return IngestionOutcome(status="failed", error=str(e) or type(e).__name__)

        await self._cleanup(event)
        return IngestionOutcome(status="stored", receipt_id=receipt_id)

    async def _ingest(self, event: BlobFinalizedEvent) -> int:
        file_path = event.path
        image_bytes = await self.blob_store.download(event.bucket, file_path)

        full_text = await self.text_extractor.detect_text(image_bytes)
        if not full_text or not full_text.strip():
            raise ExtractionFailure("No text detected in image")
        logger.info(f"Text extracted from {file_path}: {len(full_text)} characters")

        prompt = build_receipt_parsing_prompt(full_text)
        response_text = await self.structured_extractor.generate(prompt)
        logger.debug(f"Structured extraction response for {file_path}: {response_text}")

        document = parse_structured_response(response_text)
        receipt_data = validate_receipt_document(document)
        receipt_data["created_at"] = _utcnow()
        receipt_data["image_path"] = file_path

        receipt_id = await self.receipt_store.insert(receipt_data)
        logger.info(
            f"Receipt stored: {file_path} -> id={receipt_id} "
            f"({receipt_data['store_name']}, {receipt_data['date']}, {len(receipt_data['items'])} items)"
        )
        return receipt_id

    async def _cleanup(self, event: BlobFinalizedEvent) -> None:
        # The receipt is already stored; a failed delete only leaves the image behind
        try:
            await self.blob_store.delete(event.bucket, event.path)
        except Exception as e:
            logger.warning(f"Receipt stored but image {event.path} could not be deleted: {e}")

    async def _record_failure(self, file_path: str, message: str) -> None:
        try:
            await self.error_log.insert(
                {"file_path": file_path, "error": message, "timestamp": _utcnow()}
            )
        except Exception as e:
            logger.exception(f"Could not record ingestion error for {file_path}: {e}")
