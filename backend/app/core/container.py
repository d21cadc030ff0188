"""
Application service container

Builds the stores, upstream client, rate limit policies and services once at
startup. Routers reach them through ``get_container`` instead of module
level globals, and tests build a container around in-memory stores.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request

from app.core.config import Settings
from app.core.rate_limit import DailyCallLimiter, TokenBucket
from app.core.scheduler import BackgroundScheduler
from app.services.fuzzy_search_service import FuzzySearchService
from app.services.ingestion_log_store import (
    DatabaseIngestionLogStore,
    InMemoryIngestionLogStore,
    IngestionLogStore,
)
from app.services.ingestion_service import IngestionService
from app.services.price_cache_store import (
    DatabasePriceCacheStore,
    InMemoryPriceCacheStore,
    PriceCacheStore,
)
from app.services.price_lookup_service import PriceLookupService
from app.services.pricecharting_client import PriceChartingClient
from app.services.product_store import DatabaseProductStore, InMemoryProductStore, ProductStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    client: PriceChartingClient
    product_store: ProductStore
    cache_store: PriceCacheStore
    log_store: IngestionLogStore
    search_service: FuzzySearchService
    ingestion_service: IngestionService
    price_service: PriceLookupService
    scheduler: BackgroundScheduler
    storage_backend: str = "memory"

    async def startup(self) -> None:
        if self.storage_backend == "database":
            from app.core.database import init_db
            await init_db()
        if self.settings.SCHEDULER_ENABLED:
            await self.scheduler.start()

    async def shutdown(self) -> None:
        await self.scheduler.stop()
        await self.client.aclose()
        if self.storage_backend == "database":
            from app.core.database import close_db
            await close_db()


def build_container(
    settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
    product_store: Optional[ProductStore] = None,
    cache_store: Optional[PriceCacheStore] = None,
    log_store: Optional[IngestionLogStore] = None,
) -> ServiceContainer:
    """Wire the application from settings; explicit stores take precedence"""
    storage_backend = "memory"
    if settings.uses_database and not (product_store and cache_store and log_store):
        from app.core.database import AsyncSessionLocal

        storage_backend = "database"
        product_store = product_store or DatabaseProductStore(AsyncSessionLocal)
        cache_store = cache_store or DatabasePriceCacheStore(AsyncSessionLocal)
        log_store = log_store or DatabaseIngestionLogStore(AsyncSessionLocal)
    else:
        if settings.STORAGE_BACKEND == "database" and not settings.DATABASE_URL:
            logger.warning("DATABASE_URL not set, using in-memory storage")
        product_store = product_store or InMemoryProductStore()
        cache_store = cache_store or InMemoryPriceCacheStore()
        log_store = log_store or InMemoryIngestionLogStore()

    client = PriceChartingClient(
        api_key=settings.PRICE_CHARTING_API_KEY,
        base_url=settings.PRICE_CHARTING_BASE_URL,
        csv_url=settings.PRICE_CHARTING_CSV_URL,
        categories=settings.PRICE_CHARTING_CATEGORIES,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
        csv_timeout=settings.CSV_DOWNLOAD_TIMEOUT_SECONDS,
        http_client=http_client,
    )

    search_service = FuzzySearchService(
        product_store,
        strategy_limit=settings.SEARCH_STRATEGY_LIMIT,
        similarity_floor=settings.SEARCH_SIMILARITY_FLOOR,
        default_limit=settings.SEARCH_RESULT_LIMIT,
    )

    ingestion_service = IngestionService(
        client,
        product_store,
        log_store,
        batch_size=settings.INGESTION_BATCH_SIZE,
        bucket=TokenBucket(settings.INGESTION_BUCKET_CAPACITY, settings.INGESTION_BUCKET_REFILL_PER_SECOND),
    )

    price_service = PriceLookupService(
        client,
        cache_store,
        DailyCallLimiter(cache_store.count_cached_since, settings.PRICE_API_DAILY_LIMIT),
        search_service,
        bucket=TokenBucket(settings.UPSTREAM_BUCKET_CAPACITY, settings.UPSTREAM_BUCKET_REFILL_PER_SECOND),
        ttl_hours=settings.PRICE_CACHE_TTL_HOURS,
        local_match_floor=settings.LOCAL_MATCH_FLOOR,
    )

    scheduler = BackgroundScheduler(
        ingestion_service,
        cron_hour=settings.INGESTION_CRON_HOUR,
        cron_minute=settings.INGESTION_CRON_MINUTE,
    )

    logger.info(f"Service container built with {storage_backend} storage")
    return ServiceContainer(
        settings=settings,
        client=client,
        product_store=product_store,
        cache_store=cache_store,
        log_store=log_store,
        search_service=search_service,
        ingestion_service=ingestion_service,
        price_service=price_service,
        scheduler=scheduler,
        storage_backend=storage_backend,
    )


def get_container(request: Request) -> ServiceContainer:
    """Dependency returning the container built at startup"""
    return request.app.state.container
