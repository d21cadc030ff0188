"""
Scheduler Status API Endpoints

Provides endpoints to monitor background job status and manually trigger jobs.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi import status as http_status

from app.core.container import ServiceContainer, get_container
from app.core.scheduler import BackgroundScheduler
from app.services.ingestion_service import IngestionService
from app.schemas.common import DataResponse, ErrorResponse

router = APIRouter(prefix="/scheduler", tags=["scheduler"])


def get_scheduler(container: ServiceContainer = Depends(get_container)) -> BackgroundScheduler:
    """Dependency to get the background scheduler"""
    return container.scheduler


def get_ingestion_service(container: ServiceContainer = Depends(get_container)) -> IngestionService:
    return container.ingestion_service


@router.get(
    "/status",
    response_model=DataResponse,
    responses={
        200: {"description": "Scheduler status retrieved successfully"},
        500: {"description": "Internal server error", "model": ErrorResponse}
    }
)
async def get_scheduler_status(
    scheduler: BackgroundScheduler = Depends(get_scheduler)
):
    """
    Get status of background scheduler and all jobs

    Returns information about:
    - Scheduler state (running/stopped)
    - Scheduled jobs with next run times
    """
    try:
        job_status = scheduler.get_job_status()
        running = job_status["status"] == "running"

        return DataResponse(data={
            "scheduler": job_status,
            "system_health": "healthy" if running else "degraded",
            "message": "Background ingestion is active" if running else "Background ingestion is not running"
        })

    except Exception as e:
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get scheduler status: {str(e)}"
        )


@router.post(
    "/trigger/ingestion",
    response_model=DataResponse,
    responses={
        200: {"description": "Job triggered successfully"},
        400: {"description": "Bad request", "model": ErrorResponse},
        500: {"description": "Internal server error", "model": ErrorResponse}
    }
)
async def trigger_ingestion_job(
    scheduler: BackgroundScheduler = Depends(get_scheduler)
):
    """
    Manually trigger the daily price guide ingestion job

    The job runs in the background; progress shows up in /ingestion/logs.
    """
    try:
        result = await scheduler.trigger_ingestion_job()

        if result["success"]:
            return DataResponse(data={
                "message": result["message"],
                "triggered_at": "now"
            })
        else:
            raise HTTPException(
                status_code=http_status.HTTP_400_BAD_REQUEST,
                detail=result["message"]
            )

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to trigger job: {str(e)}"
        )


@router.get(
    "/job-history",
    response_model=DataResponse,
    responses={
        200: {"description": "Job history retrieved successfully"},
        500: {"description": "Internal server error", "model": ErrorResponse}
    }
)
async def get_job_history(
    limit: int = Query(10, ge=1, le=100),
    ingestion_service: IngestionService = Depends(get_ingestion_service)
):
    """Recent ingestion runs with success rate and average duration"""
    try:
        logs = await ingestion_service.recent_logs(limit=limit)
        durations = [log.duration_seconds or 0 for log in logs]

        return DataResponse(data={
            "performance_metrics": {
                "avg_processing_time": sum(durations) / max(len(logs), 1),
                "success_rate": sum(1 for log in logs if log.success) / max(len(logs), 1) * 100,
                "total_products_ingested": sum(log.product_count for log in logs),
            },
            "job_history": [log.model_dump(mode="json") for log in logs]
        })

    except Exception as e:
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get job history: {str(e)}"
        )
