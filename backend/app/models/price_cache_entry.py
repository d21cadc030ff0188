"""
Price cache model for persisted upstream search responses
"""

from sqlalchemy import Column, String, DateTime
from sqlalchemy.dialects.postgresql import JSONB

from app.core.database import Base


class PriceCacheEntry(Base):
    """Upstream search response keyed by normalized product name"""
    __tablename__ = "price_cache"

    product_name = Column(String(100), primary_key=True, index=True)
    api_response = Column(JSONB, nullable=True)

    # cached_at doubles as the daily call counter window
    cached_at = Column(DateTime(timezone=True), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
