"""
Common schemas and response models
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseResponse(BaseModel):
    """Base response model"""
    success: bool = Field(default=True)
    timestamp: datetime = Field(default_factory=utcnow)


class DataResponse(BaseResponse):
    """Response with data"""
    data: Any = Field(...)


class ErrorResponse(BaseResponse):
    """Error response model"""
    success: bool = Field(default=False)
    error: str = Field(...)
    error_code: Optional[str] = Field(default=None)
    details: Optional[Dict[str, Any]] = Field(default=None)


class HealthResponse(BaseModel):
    """Health check response"""
    status: str = Field(...)
    timestamp: float = Field(...)
    version: str = Field(...)
    storage_backend: str = Field(...)
    scheduler: str = Field(default="stopped")
