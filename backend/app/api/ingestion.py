"""
Price guide ingestion API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from fastapi.responses import JSONResponse
from typing import Optional
import logging

from app.core.container import ServiceContainer, get_container
from app.core.exceptions import PriceTrackerError
from app.services.ingestion_service import IngestionService
from app.schemas.common import ErrorResponse
from app.schemas.ingestion import (
    IngestionLogListResponse,
    IngestionRequest,
    IngestionResult,
    IngestionRunAllResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ingestion", tags=["ingestion"])


def get_ingestion_service(container: ServiceContainer = Depends(get_container)) -> IngestionService:
    """Dependency to get the ingestion service"""
    return container.ingestion_service


@router.post(
    "/run",
    response_model=IngestionResult,
    response_model_exclude_none=True,
    responses={
        200: {"description": "Category ingested successfully"},
        400: {"description": "Unknown category", "model": ErrorResponse},
        500: {"description": "Ingestion failed"}
    }
)
async def run_ingestion(
    request: IngestionRequest,
    ingestion_service: IngestionService = Depends(get_ingestion_service)
):
    """
    Download, parse and store the price guide CSV for one category

    The category's existing products are replaced. A failed run still
    writes an ingestion log entry and is reported with status 500.
    """
    try:
        result = await ingestion_service.ingest(request.category, triggered_manually=True)

        if not result.success:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=result.model_dump(mode="json", include={"success", "category", "error", "timestamp"}),
            )

        return result

    except HTTPException:
        raise
    except PriceTrackerError:
        raise
    except Exception as e:
        logger.error(f"Error running ingestion for {request.category}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )


@router.post(
    "/run-all",
    response_model=IngestionRunAllResponse,
    responses={
        200: {"description": "All categories processed"},
        500: {"description": "Internal server error", "model": ErrorResponse}
    }
)
async def run_all_ingestion(
    ingestion_service: IngestionService = Depends(get_ingestion_service)
):
    """Ingest every configured category, one after another"""
    try:
        return await ingestion_service.ingest_all(triggered_manually=True)

    except PriceTrackerError:
        raise
    except Exception as e:
        logger.error(f"Error running ingestion for all categories: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )


@router.get(
    "/logs",
    response_model=IngestionLogListResponse,
    responses={
        200: {"description": "Ingestion logs retrieved successfully"},
        500: {"description": "Internal server error", "model": ErrorResponse}
    }
)
async def get_ingestion_logs(
    limit: int = Query(20, ge=1, le=200, description="Number of log entries"),
    category: Optional[str] = Query(None, description="Filter by category"),
    ingestion_service: IngestionService = Depends(get_ingestion_service)
):
    """Recent ingestion runs, newest first"""
    try:
        logs = await ingestion_service.recent_logs(limit=limit, category=category)
        return IngestionLogListResponse(logs=logs, count=len(logs))

    except PriceTrackerError:
        raise
    except Exception as e:
        logger.error(f"Error fetching ingestion logs: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )
