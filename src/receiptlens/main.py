import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from receiptlens import receipt_routes
from receiptlens.config import Settings, settings
from receiptlens.database.connection import AsyncSessionLocal
from receiptlens.external_apis.google_drive_client import (
    GoogleDriveBlobStore,
    build_gdrive_service,
)
from receiptlens.external_apis.ocr_client import TesseractTextExtractor
from receiptlens.external_apis.openai_client import (
    OpenAIStructuredExtractor,
    create_openai_client,
)
from receiptlens.services.analytics_service import AnalyticsService
from receiptlens.services.ingestion_service import ReceiptIngestionPipeline
from receiptlens.services.receipt_store import ErrorLog, ReceiptStore

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def init_services(app: FastAPI, app_settings: Settings) -> None:
    """Builds the external clients once and attaches the services to app.state."""
    receipt_store = ReceiptStore(AsyncSessionLocal)
    app.state.analytics_service = AnalyticsService(receipt_store)

    drive_service = build_gdrive_service(app_settings.GOOGLE_DRIVE_CREDENTIALS_PATH)
    if drive_service is None:
        logger.warning("Blob store unavailable. Object-finalized events will be rejected.")
        app.state.ingestion_pipeline = None
        return

    app.state.ingestion_pipeline = ReceiptIngestionPipeline(
        blob_store=GoogleDriveBlobStore(drive_service),
        text_extractor=TesseractTextExtractor(
            lang=app_settings.TESSERACT_LANG,
            tesseract_cmd=app_settings.TESSERACT_CMD,
        ),
        structured_extractor=OpenAIStructuredExtractor(
            create_openai_client(
                app_settings.OPENAI_API_KEY, timeout=app_settings.OPENAI_TIMEOUT_SECONDS
            ),
            model=app_settings.OPENAI_MODEL,
        ),
        receipt_store=receipt_store,
        error_log=ErrorLog(AsyncSessionLocal),
        watched_bucket=app_settings.RECEIPTS_BUCKET,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME}...")
    init_services(app, settings)
    yield
    logger.info(f"{settings.APP_NAME} shutdown process finished.")


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    description="Turns photographed receipts into structured records and spending analytics.",
    lifespan=lifespan,
)

app.include_router(receipt_routes.receipt_api_router, prefix="/api/v1", tags=["Receipts"])


@app.get("/health", tags=["Health"])
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "ok",
        "pipeline_ready": getattr(app.state, "ingestion_pipeline", None) is not None,
    }
