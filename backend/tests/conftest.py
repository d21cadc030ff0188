"""
Pytest configuration and fixtures for the price tracker tests

Provides sample price guide data, a controllable clock, in-memory stores and
a stub Price Charting client shared by the service and API test suites.
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional
import sys

# Add the app directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.exceptions import PricingAPIError, UnknownCategoryError
from app.core.rate_limit import DailyCallLimiter, TokenBucket
from app.schemas.products import ProductRecord
from app.services.fuzzy_search_service import FuzzySearchService
from app.services.ingestion_log_store import InMemoryIngestionLogStore
from app.services.ingestion_service import IngestionService
from app.services.price_cache_store import InMemoryPriceCacheStore
from app.services.price_lookup_service import PriceLookupService
from app.services.product_store import InMemoryProductStore


SAMPLE_CSV = (
    "id,product-name,console-name,loose-price,cib-price,new-price\n"
    '1,Charizard,Pokemon Base Set,$350.00,"$1,200.00",\n'
    "2,Blastoise,Pokemon Base Set,$120.50,$300.00,$900.00\n"
    "3,,Pokemon Base Set,$1.00,,\n"
    "4,Venusaur,Pokemon Base Set,$95.00,N/A,\n"
)


class FakeClock:
    """Callable datetime clock that only moves when told to"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    """Monotonic clock plus a sleep that advances it instead of waiting"""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class StubPriceChartingClient:
    """Stands in for PriceChartingClient without any HTTP"""

    def __init__(
        self,
        csv_by_category: Optional[Dict[str, str]] = None,
        search_results: Optional[Dict[str, Any]] = None,
        categories: Optional[List[str]] = None,
    ):
        self.csv_by_category = csv_by_category or {}
        self.search_results = search_results or {}
        self._categories = categories or ["video_games", "pokemon_cards"]
        self.search_calls: List[str] = []
        self.detail_calls: List[str] = []
        self.download_calls: List[str] = []
        self.failing_names: set = set()

    @property
    def categories(self) -> List[str]:
        return list(self._categories)

    async def aclose(self) -> None:
        pass

    async def search(self, name: str) -> Any:
        self.search_calls.append(name)
        if name in self.failing_names:
            raise PricingAPIError("Price Charting API error: 500 Internal Server Error")
        return self.search_results.get(name, {"status": "success", "products": []})

    async def get_detail(self, product_id: str) -> Any:
        self.detail_calls.append(product_id)
        return {"status": "success", "id": product_id}

    async def download_csv(self, category: str) -> str:
        if category not in self._categories:
            raise UnknownCategoryError(category)
        self.download_calls.append(category)
        body = self.csv_by_category.get(category)
        if isinstance(body, Exception):
            raise body
        if body is None:
            raise PricingAPIError("Failed to download CSV: 404 Not Found")
        return body


def make_product(product_id: str, name: str, category: str = "pokemon_cards", **prices) -> ProductRecord:
    return ProductRecord(
        category=category,
        product_id=product_id,
        product_name=name,
        console_name="Pokemon Base Set",
        downloaded_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        **{key: Decimal(str(value)) for key, value in prices.items()},
    )


@pytest.fixture
def sample_csv():
    """Provide a small price guide export with one malformed row"""
    return SAMPLE_CSV


@pytest.fixture
def clock():
    """Provide a clock fixed at noon UTC"""
    return FakeClock(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def product_store():
    return InMemoryProductStore()


@pytest.fixture
def cache_store():
    return InMemoryPriceCacheStore()


@pytest.fixture
def log_store():
    return InMemoryIngestionLogStore()


@pytest.fixture
def stub_client(sample_csv):
    """Provide a stub client serving the sample CSV for pokemon_cards"""
    return StubPriceChartingClient(csv_by_category={"pokemon_cards": sample_csv})


@pytest.fixture
def ingestion_service(stub_client, product_store, log_store, clock):
    return IngestionService(stub_client, product_store, log_store, batch_size=2, clock=clock)


@pytest.fixture
def search_service(product_store):
    return FuzzySearchService(product_store)


@pytest.fixture
def price_service(stub_client, cache_store, search_service, clock, monotonic):
    limiter = DailyCallLimiter(cache_store.count_cached_since, capacity=3, clock=clock)
    bucket = TokenBucket(1, 10.0, clock=monotonic, sleep=monotonic.sleep)
    return PriceLookupService(
        stub_client,
        cache_store,
        limiter,
        search_service,
        bucket=bucket,
        ttl_hours=24,
        local_match_floor=0.5,
        clock=clock,
    )


# Pytest configuration
def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "api: mark test as exercising the HTTP layer"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically"""
    for item in items:
        if "test_api" in item.nodeid:
            item.add_marker(pytest.mark.api)
        if "integration" in item.nodeid.lower():
            item.add_marker(pytest.mark.integration)
