"""
Price lookup schemas
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from datetime import datetime


class CacheRecord(BaseModel):
    """Stored upstream response"""
    product_name: str = Field(...)
    api_response: Any = Field(default=None)
    cached_at: datetime = Field(...)
    expires_at: datetime = Field(...)

    class Config:
        from_attributes = True


class PriceLookupResult(BaseModel):
    cached: bool = Field(...)
    data: Any = Field(default=None)


class PriceSearchResponse(BaseModel):
    success: bool = Field(default=True)
    cached: bool = Field(...)
    data: Any = Field(default=None)


class PortfolioLookupRequest(BaseModel):
    productNames: List[str] = Field(...)
    source: str = Field(default="api", pattern="^(api|local)$")


class ProductSummary(BaseModel):
    """Best match for one portfolio item name"""
    product_id: Optional[str] = Field(default=None)
    product_name: Optional[str] = Field(default=None)
    console_name: Optional[str] = Field(default=None)
    loose_price: Optional[float] = Field(default=None)
    cib_price: Optional[float] = Field(default=None)
    new_price: Optional[float] = Field(default=None)
    image_url: Optional[str] = Field(default=None)
    similarity_score: Optional[float] = Field(default=None)
    cached: bool = Field(default=False)
    source: str = Field(default="api")


class PortfolioSummary(BaseModel):
    total: int = Field(default=0)
    successful: int = Field(default=0)
    failed: int = Field(default=0)
    rateLimited: int = Field(default=0)


class PortfolioLookupResult(BaseModel):
    data: Dict[str, ProductSummary] = Field(default_factory=dict)
    summary: PortfolioSummary = Field(default_factory=PortfolioSummary)


class PortfolioLookupResponse(PortfolioLookupResult):
    success: bool = Field(default=True)


class CacheStatus(BaseModel):
    total: int = Field(default=0)
    active: int = Field(default=0)
    expired: int = Field(default=0)
    remaining_calls: int = Field(default=0)
    entries: List[CacheRecord] = Field(default_factory=list)


class CacheStatusResponse(BaseModel):
    success: bool = Field(default=True)
    cache: CacheStatus = Field(...)
