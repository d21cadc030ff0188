"""
Price Guide Ingestion Service

Downloads a category's price guide CSV, parses and normalizes it, and
replaces that category's products in the store. Every run writes exactly one
ingestion log entry, including failed runs.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from app.core.exceptions import PricingAPIError, StorageError, UnknownCategoryError
from app.core.rate_limit import TokenBucket, utcnow
from app.schemas.ingestion import (
    IngestionLogRecord,
    IngestionResult,
    IngestionRunAllResponse,
    IngestionSummary,
)
from app.services.csv_parser import parse_csv_text
from app.services.ingestion_log_store import IngestionLogStore
from app.services.pricecharting_client import PriceChartingClient
from app.services.product_normalizer import normalize_rows
from app.services.product_store import ProductStore

logger = logging.getLogger(__name__)

# How many parse errors are logged individually per run
MAX_LOGGED_PARSE_ERRORS = 10


class IngestionService:
    """Bulk ingestion pipeline for price guide CSV exports"""

    def __init__(
        self,
        client: PriceChartingClient,
        product_store: ProductStore,
        log_store: IngestionLogStore,
        batch_size: int = 1000,
        bucket: Optional[TokenBucket] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.client = client
        self.product_store = product_store
        self.log_store = log_store
        self.batch_size = batch_size
        self.bucket = bucket
        self.clock = clock

    @property
    def categories(self) -> List[str]:
        return self.client.categories

    async def ingest(self, category: str, triggered_manually: bool = False) -> IngestionResult:
        """Run one category ingestion; failures are returned, not raised

        Raises UnknownCategoryError for categories that are not configured,
        before anything is downloaded or logged.
        """
        if category not in self.categories:
            raise UnknownCategoryError(category)

        started_at = self.clock()
        logger.info(f"Starting CSV ingestion for category: {category}")

        inserted = 0
        parse_errors = 0
        error: Optional[str] = None

        try:
            csv_text = await self.client.download_csv(category)

            parsed = parse_csv_text(csv_text)
            products, row_errors = normalize_rows(parsed.rows, category, started_at)
            errors = parsed.errors + row_errors
            parse_errors = len(errors)

            for row_error in errors[:MAX_LOGGED_PARSE_ERRORS]:
                logger.debug(f"Skipped {category} row: {row_error.message}")
            if errors:
                logger.warning(f"Skipped {parse_errors} malformed rows in {category} CSV")

            logger.info(f"Parsed {len(products)} products from {category} CSV")
            inserted = await self.product_store.replace_partition(category, products, self.batch_size)

        except StorageError as e:
            inserted = e.inserted
            error = e.message
            logger.error(f"Storage error during {category} ingestion after {inserted} rows: {error}")
        except PricingAPIError as e:
            error = e.message
            logger.error(f"Download failed for {category}: {error}")
        except Exception as e:
            error = str(e) or e.__class__.__name__
            logger.error(f"Unexpected error during {category} ingestion: {error}", exc_info=True)

        finished_at = self.clock()
        result = IngestionResult(
            success=error is None,
            category=category,
            productCount=inserted,
            parseErrors=parse_errors,
            error=error,
            timestamp=finished_at,
        )

        await self._write_log(
            IngestionLogRecord(
                category=category,
                product_count=inserted,
                success=result.success,
                error_message=error,
                parse_errors=parse_errors,
                downloaded_at=started_at,
                duration_seconds=(finished_at - started_at).total_seconds(),
                triggered_manually=triggered_manually,
            )
        )

        if result.success:
            logger.info(f"Ingestion for {category} completed: {inserted} products, {parse_errors} skipped rows")
        return result

    async def ingest_all(
        self,
        categories: Optional[List[str]] = None,
        triggered_manually: bool = False,
    ) -> IngestionRunAllResponse:
        """Ingest several categories one after another"""
        categories = categories or self.categories
        for category in categories:
            if category not in self.categories:
                raise UnknownCategoryError(category)

        results: List[IngestionResult] = []
        for category in categories:
            if self.bucket is not None:
                await self.bucket.acquire()
            results.append(await self.ingest(category, triggered_manually=triggered_manually))

        summary = IngestionSummary(
            categoriesProcessed=len(results),
            successful=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if not r.success),
            totalProducts=sum(r.productCount for r in results),
        )
        logger.info(
            f"Ingestion run completed: {summary.successful} successful, "
            f"{summary.failed} failed, {summary.totalProducts} total products"
        )
        return IngestionRunAllResponse(success=True, timestamp=self.clock(), summary=summary, results=results)

    async def recent_logs(self, limit: int = 20, category: Optional[str] = None) -> List[IngestionLogRecord]:
        return await self.log_store.recent(limit=limit, category=category)

    async def _write_log(self, entry: IngestionLogRecord) -> None:
        try:
            await self.log_store.append(entry)
        except Exception as e:
            logger.error(f"Error logging ingestion run for {entry.category}: {str(e)}", exc_info=True)
