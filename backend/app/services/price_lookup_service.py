"""
Cached price lookups against the Price Charting API

Upstream search responses are stored per normalized product name for
PRICE_CACHE_TTL_HOURS. A fresh row is served without touching the daily
ceiling or the upstream API. On a miss the daily ceiling is checked first,
then the upstream call is paced by the token bucket and its response cached.
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from app.core.exceptions import (
    InputValidationError,
    PriceTrackerError,
    RateLimitExceededError,
)
from app.core.rate_limit import DailyCallLimiter, TokenBucket, utcnow
from app.schemas.prices import (
    CacheRecord,
    CacheStatus,
    PortfolioLookupResult,
    PortfolioSummary,
    PriceLookupResult,
    ProductSummary,
)
from app.services.fuzzy_search_service import FuzzySearchService
from app.services.price_cache_store import PriceCacheStore
from app.services.pricecharting_client import PriceChartingClient
from app.services.product_normalizer import NAME_COLUMNS, CONSOLE_COLUMNS, first_present, parse_price

logger = logging.getLogger(__name__)

MAX_KEY_LENGTH = 100
STATUS_SAMPLE_SIZE = 100
STATUS_ENTRY_LIMIT = 20

_DISALLOWED = re.compile(r"[^\w\s-]", re.ASCII)
_WHITESPACE = re.compile(r"\s+")


def normalize_product_name(name: str) -> str:
    """Cache key for a product name

    Lowercased, stripped of anything but word characters, whitespace and
    hyphens, whitespace collapsed, cut to 100 characters. Applying it twice
    gives the same key.
    """
    key = name.strip().lower()
    key = _DISALLOWED.sub("", key)
    key = _WHITESPACE.sub(" ", key).strip()
    return key[:MAX_KEY_LENGTH].rstrip()


def _as_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    price = parse_price(str(value))
    return float(price) if price is not None else None


def summarize_api_response(data: Any) -> Optional[ProductSummary]:
    """First product of an upstream search response, if any"""
    if isinstance(data, dict):
        products = data.get("products") or []
    elif isinstance(data, list):
        products = data
    else:
        products = []
    if not products or not isinstance(products[0], dict):
        return None

    product = products[0]
    product_id = product.get("id", product.get("product_id"))
    return ProductSummary(
        product_id=str(product_id) if product_id is not None else None,
        product_name=first_present(product, NAME_COLUMNS),
        console_name=first_present(product, CONSOLE_COLUMNS),
        loose_price=_as_float(first_present(product, ("loose-price",))),
        cib_price=_as_float(first_present(product, ("cib-price",))),
        new_price=_as_float(first_present(product, ("new-price",))),
        image_url=first_present(product, ("image-url",)),
        source="api",
    )


class PriceLookupService:
    """Price cache in front of the upstream pricing API"""

    def __init__(
        self,
        client: PriceChartingClient,
        cache_store: PriceCacheStore,
        limiter: DailyCallLimiter,
        search_service: FuzzySearchService,
        bucket: Optional[TokenBucket] = None,
        ttl_hours: int = 24,
        local_match_floor: float = 0.5,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.client = client
        self.cache_store = cache_store
        self.limiter = limiter
        self.search_service = search_service
        self.bucket = bucket
        self.ttl = timedelta(hours=ttl_hours)
        self.local_match_floor = local_match_floor
        self.clock = clock

    async def get_cached(self, product_name: str) -> Optional[Any]:
        """Cached response for a name if it has not expired"""
        record = await self.cache_store.get(normalize_product_name(product_name))
        if record and record.expires_at > self.clock():
            return record.api_response
        return None

    async def lookup(self, product_name: str) -> PriceLookupResult:
        """Search the upstream API through the cache"""
        key = normalize_product_name(product_name or "")
        if not key:
            raise InputValidationError("Product name is required")

        cached = await self.get_cached(key)
        if cached is not None:
            logger.info(f"Returning cached response for: {key}")
            return PriceLookupResult(cached=True, data=cached)

        await self.limiter.check()
        if self.bucket is not None:
            await self.bucket.acquire()

        api_response = await self.client.search(key)

        now = self.clock()
        await self.cache_store.upsert(
            CacheRecord(
                product_name=key,
                api_response=api_response,
                cached_at=now,
                expires_at=now + self.ttl,
            )
        )
        return PriceLookupResult(cached=False, data=api_response)

    async def get_product_detail(self, product_id: str) -> Any:
        """Upstream detail for one product id, within the daily ceiling"""
        if not product_id or not product_id.strip():
            raise InputValidationError("Product ID is required")
        await self.limiter.check()
        if self.bucket is not None:
            await self.bucket.acquire()
        return await self.client.get_detail(product_id.strip())

    async def lookup_portfolio(self, product_names: List[str], source: str = "api") -> PortfolioLookupResult:
        """Best match per unique name; unmatched or failed names are left out"""
        names = list(dict.fromkeys(name.strip() for name in product_names if name and name.strip()))
        if not names:
            raise InputValidationError("Product names array is required")

        data: Dict[str, ProductSummary] = {}
        failed = 0
        rate_limited = 0

        for name in names:
            try:
                if source == "local":
                    summary = await self._match_local(name)
                else:
                    summary = await self._match_remote(name)
            except RateLimitExceededError:
                rate_limited += 1
                logger.warning(f"Rate limit reached, skipping: {name}")
                continue
            except PriceTrackerError as e:
                failed += 1
                logger.error(f"Failed to fetch data for {name}: {e.message}")
                continue

            if summary is not None:
                data[name] = summary
            else:
                logger.info(f"No match found for: {name}")

        return PortfolioLookupResult(
            data=data,
            summary=PortfolioSummary(
                total=len(names),
                successful=len(data),
                failed=failed,
                rateLimited=rate_limited,
            ),
        )

    async def _match_remote(self, name: str) -> Optional[ProductSummary]:
        result = await self.lookup(name)
        summary = summarize_api_response(result.data)
        if summary is not None:
            summary.cached = result.cached
        return summary

    async def _match_local(self, name: str) -> Optional[ProductSummary]:
        match = await self.search_service.best_match(name, floor=self.local_match_floor)
        if match is None:
            return None
        return ProductSummary(
            product_id=match.product_id,
            product_name=match.product_name,
            console_name=match.console_name,
            loose_price=match.loose_price,
            cib_price=match.cib_price,
            new_price=match.new_price,
            similarity_score=match.similarity_score,
            cached=False,
            source="local",
        )

    async def cache_status(self) -> CacheStatus:
        rows = await self.cache_store.recent(limit=STATUS_SAMPLE_SIZE)
        now = self.clock()
        active = [row for row in rows if row.expires_at > now]
        return CacheStatus(
            total=len(rows),
            active=len(active),
            expired=len(rows) - len(active),
            remaining_calls=await self.limiter.remaining(),
            entries=active[:STATUS_ENTRY_LIMIT],
        )
