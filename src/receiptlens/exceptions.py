class ReceiptIngestionError(Exception):
    """Base class for every failure the ingestion pipeline records."""


class FetchFailure(ReceiptIngestionError):
    """The receipt image could not be downloaded from the blob store."""


class ExtractionFailure(ReceiptIngestionError):
    """OCR failed or returned no text."""


class GenerationFailure(ReceiptIngestionError):
    """The structured extraction model failed or returned unparsable content."""


class ValidationFailure(ReceiptIngestionError):
    """A mandatory receipt field is missing from the extracted document."""


class StoreFailure(ReceiptIngestionError):
    """A read, write or delete against a store failed."""
