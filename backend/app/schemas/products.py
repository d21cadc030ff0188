"""
Product schemas
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from decimal import Decimal
from datetime import datetime


class ProductRecord(BaseModel):
    """Canonical product record shared by the stores and services"""
    category: str = Field(...)
    product_id: str = Field(...)
    product_name: str = Field(..., min_length=1)
    console_name: Optional[str] = Field(default=None)
    loose_price: Optional[Decimal] = Field(default=None)
    cib_price: Optional[Decimal] = Field(default=None)
    new_price: Optional[Decimal] = Field(default=None)
    graded_price: Optional[Decimal] = Field(default=None)
    box_price: Optional[Decimal] = Field(default=None)
    manual_price: Optional[Decimal] = Field(default=None)
    raw_data: Optional[Dict[str, Any]] = Field(default_factory=dict)
    downloaded_at: datetime = Field(...)

    class Config:
        from_attributes = True


def _as_float(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


class ProductResponse(BaseModel):
    """Product as returned by the API"""
    product_id: str = Field(...)
    product_name: str = Field(...)
    console_name: Optional[str] = Field(default=None)
    category: str = Field(...)
    loose_price: Optional[float] = Field(default=None)
    cib_price: Optional[float] = Field(default=None)
    new_price: Optional[float] = Field(default=None)
    graded_price: Optional[float] = Field(default=None)
    box_price: Optional[float] = Field(default=None)
    manual_price: Optional[float] = Field(default=None)
    downloaded_at: Optional[datetime] = Field(default=None)

    @classmethod
    def from_record(cls, record: ProductRecord, **extra: Any) -> "ProductResponse":
        return cls(
            product_id=record.product_id,
            product_name=record.product_name,
            console_name=record.console_name,
            category=record.category,
            loose_price=_as_float(record.loose_price),
            cib_price=_as_float(record.cib_price),
            new_price=_as_float(record.new_price),
            graded_price=_as_float(record.graded_price),
            box_price=_as_float(record.box_price),
            manual_price=_as_float(record.manual_price),
            downloaded_at=record.downloaded_at,
            **extra,
        )


class RankedProduct(ProductResponse):
    """Search result with its similarity to the query"""
    similarity_score: float = Field(..., ge=0.0, le=1.0)


class ProductSearchResponse(BaseModel):
    success: bool = Field(default=True)
    query: str = Field(...)
    results: List[RankedProduct] = Field(default_factory=list)
    count: int = Field(default=0)


class ProductLookupRequest(BaseModel):
    productId: str = Field(..., min_length=1)
    category: Optional[str] = Field(default=None)


class ProductLookupResponse(BaseModel):
    success: bool = Field(default=True)
    product: ProductResponse = Field(...)


class ProductStatsResponse(BaseModel):
    success: bool = Field(default=True)
    total: int = Field(default=0)
    categories: Dict[str, int] = Field(default_factory=dict)
