import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from receiptlens.exceptions import StoreFailure
from receiptlens.schemas.receipt_schemas import (
    AnalyticsResult,
    BlobFinalizedEvent,
    IngestionOutcome,
)
from receiptlens.services.analytics_service import AnalyticsService
from receiptlens.services.ingestion_service import ReceiptIngestionPipeline

logger = logging.getLogger(__name__)
receipt_api_router = APIRouter()


def get_ingestion_pipeline(request: Request) -> ReceiptIngestionPipeline:
    pipeline: Optional[ReceiptIngestionPipeline] = getattr(
        request.app.state, "ingestion_pipeline", None
    )
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Ingestion pipeline is not configured.")
    return pipeline


def get_analytics_service(request: Request) -> AnalyticsService:
    service: Optional[AnalyticsService] = getattr(request.app.state, "analytics_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Analytics service is not configured.")
    return service


@receipt_api_router.post("/events/object-finalized", response_model=IngestionOutcome)
async def handle_object_finalized(
    event: BlobFinalizedEvent,
    pipeline: ReceiptIngestionPipeline = Depends(get_ingestion_pipeline),
) -> IngestionOutcome:
    """
    Blob store notification for a newly uploaded object.
    Always acknowledged with 200; failures are recorded in the error log.
    """
    logger.info(
        f"Object finalized: bucket={event.bucket}, path={event.path}, contentType={event.content_type}"
    )
    return await pipeline.process_event(event)


@receipt_api_router.api_route(
    "/analytics", methods=["GET", "POST"], response_model=AnalyticsResult
)
async def get_receipt_analytics(
    service: AnalyticsService = Depends(get_analytics_service),
) -> AnalyticsResult:
    """Spending summary over every stored receipt."""
    try:
        return await service.compute_analytics()
    except StoreFailure as e:
        logger.error(f"Error calculating analytics: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to calculate analytics")
