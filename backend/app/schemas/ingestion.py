"""
Ingestion schemas
"""

from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime

from app.schemas.common import utcnow


class IngestionRequest(BaseModel):
    category: str = Field(..., min_length=1)


class IngestionResult(BaseModel):
    """Outcome of one category ingestion run"""
    success: bool = Field(...)
    category: str = Field(...)
    productCount: int = Field(default=0)
    parseErrors: int = Field(default=0)
    error: Optional[str] = Field(default=None)
    timestamp: datetime = Field(default_factory=utcnow)


class IngestionSummary(BaseModel):
    categoriesProcessed: int = Field(default=0)
    successful: int = Field(default=0)
    failed: int = Field(default=0)
    totalProducts: int = Field(default=0)


class IngestionRunAllResponse(BaseModel):
    success: bool = Field(default=True)
    timestamp: datetime = Field(default_factory=utcnow)
    summary: IngestionSummary = Field(...)
    results: List[IngestionResult] = Field(default_factory=list)


class IngestionLogRecord(BaseModel):
    """Append-only ingestion log entry"""
    category: str = Field(...)
    product_count: int = Field(default=0)
    success: bool = Field(...)
    error_message: Optional[str] = Field(default=None)
    parse_errors: int = Field(default=0)
    downloaded_at: datetime = Field(...)
    duration_seconds: Optional[float] = Field(default=None)
    triggered_manually: bool = Field(default=False)

    class Config:
        from_attributes = True


class IngestionLogListResponse(BaseModel):
    success: bool = Field(default=True)
    logs: List[IngestionLogRecord] = Field(default_factory=list)
    count: int = Field(default=0)
