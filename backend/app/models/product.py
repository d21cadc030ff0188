"""
Price guide product model

One row per product per category, replaced wholesale on every CSV ingestion.
"""

from sqlalchemy import Column, String, DateTime, Numeric, Text, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
import uuid

from app.core.database import Base


class Product(Base):
    """Product row from the Price Charting price guide"""
    __tablename__ = "price_charting_products"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)

    # Partition and identity; product_id is not unique (duplicates from the
    # source CSV are stored as-is)
    category = Column(String(50), nullable=False, index=True)
    product_id = Column(String(100), nullable=False)

    product_name = Column(Text, nullable=False)
    console_name = Column(Text, nullable=True)

    # Prices in currency units; NULL means "not reported", never zero
    loose_price = Column(Numeric(precision=12, scale=2), nullable=True)
    cib_price = Column(Numeric(precision=12, scale=2), nullable=True)
    new_price = Column(Numeric(precision=12, scale=2), nullable=True)
    graded_price = Column(Numeric(precision=12, scale=2), nullable=True)
    box_price = Column(Numeric(precision=12, scale=2), nullable=True)
    manual_price = Column(Numeric(precision=12, scale=2), nullable=True)

    # Original CSV row
    raw_data = Column(JSONB, nullable=True)

    downloaded_at = Column(DateTime(timezone=True), nullable=False, index=True)

    __table_args__ = (
        Index("idx_products_category_product_id", "category", "product_id"),
        Index("idx_products_product_name", "product_name"),
    )

    def __repr__(self):
        return f"<Product(category='{self.category}', product_id='{self.product_id}', name='{self.product_name}')>"
