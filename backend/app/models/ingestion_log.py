"""
Ingestion Log Model

One append-only entry per CSV ingestion run, written on success and failure.
"""

from sqlalchemy import Column, String, DateTime, Integer, Float, Text, Boolean
from sqlalchemy.dialects.postgresql import UUID
from app.core.database import Base
import uuid


class IngestionLog(Base):
    """Log entries for price guide CSV ingestion runs"""
    __tablename__ = "csv_download_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)

    category = Column(String(50), nullable=False, index=True)

    # Results
    product_count = Column(Integer, nullable=False, default=0)
    success = Column(Boolean, nullable=False, index=True)
    error_message = Column(Text, nullable=True)
    parse_errors = Column(Integer, nullable=False, default=0)

    # Timing
    downloaded_at = Column(DateTime(timezone=True), nullable=False, index=True)
    duration_seconds = Column(Float, nullable=True)

    triggered_manually = Column(Boolean, default=False)

    def __repr__(self):
        return f"<IngestionLog(category='{self.category}', success={self.success}, products={self.product_count})>"
