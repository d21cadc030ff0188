"""
FastAPI application entry point

Run with: uvicorn app.main:app --reload
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.router import api_router
from app.core.config import settings
from app.core.container import ServiceContainer, build_container
from app.core.exceptions import PriceTrackerError
from app.core.logging import setup_logging
from app.schemas.common import ErrorResponse, HealthResponse

logger = logging.getLogger(__name__)


def _error_response(status_code: int, error: str, error_code: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, error_code=error_code)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """Build the application; tests pass a container wired with fakes"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.LOG_LEVEL)
        app.state.container = container or build_container(settings)
        logger.info(f"Starting {settings.APP_NAME} v{settings.VERSION} ({settings.ENVIRONMENT})")
        await app.state.container.startup()
        try:
            yield
        finally:
            await app.state.container.shutdown()
            logger.info("Application shutdown complete")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        description="Collectibles price guide ingestion, fuzzy search and cached price lookups",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PriceTrackerError)
    async def price_tracker_error_handler(request: Request, exc: PriceTrackerError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return _error_response(exc.status_code, exc.message, exc.error_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return _error_response(status.HTTP_400_BAD_REQUEST, message, "invalid_input")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}", exc_info=True)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    app.include_router(api_router)

    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request):
        """Health check endpoint"""
        current = request.app.state.container
        return HealthResponse(
            status="healthy",
            timestamp=time.time(),
            version=settings.VERSION,
            storage_backend=current.storage_backend,
            scheduler=current.scheduler.get_job_status()["status"],
        )

    return app


app = create_app()
