"""
Tests for the bulk price guide ingestion pipeline
"""

import pytest
from decimal import Decimal
from typing import List

from app.core.exceptions import StorageError, UnknownCategoryError
from app.core.rate_limit import TokenBucket
from app.schemas.products import ProductRecord
from app.services.ingestion_log_store import InMemoryIngestionLogStore
from app.services.ingestion_service import IngestionService
from app.services.product_store import InMemoryProductStore

from conftest import StubPriceChartingClient, make_product


class BrokenInsertStore(InMemoryProductStore):
    """Accepts the first batch, fails every later one"""

    def __init__(self):
        super().__init__()
        self.batches = 0

    async def _insert_batch(self, products: List[ProductRecord]) -> None:
        self.batches += 1
        if self.batches > 1:
            raise StorageError("Failed to insert products: disk full")
        await super()._insert_batch(products)


class BrokenLogStore(InMemoryIngestionLogStore):

    async def append(self, entry) -> None:
        raise StorageError("Failed to save ingestion log: read-only")


class TestIngest:
    """Test suite for single category ingestion"""

    @pytest.mark.asyncio
    async def test_successful_run(self, ingestion_service, product_store, log_store, clock):
        result = await ingestion_service.ingest("pokemon_cards", triggered_manually=True)

        assert result.success is True
        assert result.category == "pokemon_cards"
        assert result.productCount == 3
        assert result.parseErrors == 1
        assert result.error is None

        charizard = await product_store.find_by_id("1", category="pokemon_cards")
        assert charizard.loose_price == Decimal("350.00")
        assert charizard.cib_price == Decimal("1200.00")
        assert charizard.new_price is None
        assert charizard.downloaded_at == clock.now

        assert len(log_store.entries) == 1
        entry = log_store.entries[0]
        assert entry.success is True
        assert entry.product_count == 3
        assert entry.parse_errors == 1
        assert entry.triggered_manually is True

    @pytest.mark.asyncio
    async def test_minimal_export(self, product_store, log_store, clock):
        client = StubPriceChartingClient(csv_by_category={"video_games": "id,product-name,loose-price\n123,Mario Kart,$12.50\n"})
        service = IngestionService(client, product_store, log_store, clock=clock)

        result = await service.ingest("video_games")

        assert result.productCount == 1
        product = await product_store.find_by_id("123")
        assert product.product_name == "Mario Kart"
        assert product.loose_price == Decimal("12.50")
        assert product.cib_price is None
        assert product.new_price is None

    @pytest.mark.asyncio
    async def test_quoted_fields_with_padding(self, product_store, log_store, clock):
        body = 'id,product-name,loose-price\n"7", "Foo Bar", "$12.50"\n'
        client = StubPriceChartingClient(csv_by_category={"video_games": body})
        service = IngestionService(client, product_store, log_store, clock=clock)

        result = await service.ingest("video_games")

        assert result.productCount == 1
        assert result.parseErrors == 0
        product = await product_store.find_by_id("7")
        assert product.product_id == "7"
        assert product.product_name == "Foo Bar"
        assert product.loose_price == Decimal("12.5")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["", "id,product-name,loose-price\n"])
    async def test_empty_export_is_a_successful_run(self, product_store, log_store, clock, body):
        client = StubPriceChartingClient(csv_by_category={"video_games": body})
        service = IngestionService(client, product_store, log_store, clock=clock)

        result = await service.ingest("video_games")

        assert result.success is True
        assert result.productCount == 0
        assert log_store.entries[0].success is True

    @pytest.mark.asyncio
    async def test_run_replaces_previous_products(self, ingestion_service, product_store):
        await product_store.replace_partition("pokemon_cards", [make_product("old", "Missingno")])

        await ingestion_service.ingest("pokemon_cards")

        assert await product_store.find_by_id("old") is None
        assert await product_store.count_by_category() == {"pokemon_cards": 3}

    @pytest.mark.asyncio
    async def test_download_failure_is_logged_and_returned(self, ingestion_service, product_store, log_store):
        await product_store.replace_partition("video_games", [make_product("v1", "Zelda", category="video_games")])

        result = await ingestion_service.ingest("video_games")

        assert result.success is False
        assert result.productCount == 0
        assert "404" in result.error
        # Nothing was deleted because the download failed first
        assert await product_store.count_by_category() == {"video_games": 1}
        assert log_store.entries[0].success is False
        assert log_store.entries[0].error_message == result.error

    @pytest.mark.asyncio
    async def test_storage_failure_reports_partial_count(self, stub_client, log_store, clock):
        store = BrokenInsertStore()
        service = IngestionService(stub_client, store, log_store, batch_size=2, clock=clock)

        result = await service.ingest("pokemon_cards")

        assert result.success is False
        assert result.productCount == 2
        assert "disk full" in result.error
        assert log_store.entries[0].product_count == 2

    @pytest.mark.asyncio
    async def test_log_failure_does_not_fail_the_run(self, stub_client, product_store, clock):
        service = IngestionService(stub_client, product_store, BrokenLogStore(), clock=clock)

        result = await service.ingest("pokemon_cards")

        assert result.success is True
        assert result.productCount == 3

    @pytest.mark.asyncio
    async def test_unknown_category_raises_before_download(self, ingestion_service, stub_client, log_store):
        with pytest.raises(UnknownCategoryError):
            await ingestion_service.ingest("beanie_babies")

        assert stub_client.download_calls == []
        assert log_store.entries == []


class TestIngestAll:

    @pytest.mark.asyncio
    async def test_summary_counts_each_category(self, ingestion_service, log_store):
        response = await ingestion_service.ingest_all()

        assert response.success is True
        assert response.summary.categoriesProcessed == 2
        assert response.summary.successful == 1
        assert response.summary.failed == 1
        assert response.summary.totalProducts == 3
        assert [r.category for r in response.results] == ["video_games", "pokemon_cards"]
        assert len(log_store.entries) == 2

    @pytest.mark.asyncio
    async def test_categories_are_paced_by_bucket(self, stub_client, product_store, log_store, clock, monotonic):
        bucket = TokenBucket(1, 5.0, clock=monotonic, sleep=monotonic.sleep)
        service = IngestionService(stub_client, product_store, log_store, bucket=bucket, clock=clock)

        await service.ingest_all(["pokemon_cards", "pokemon_cards", "video_games"])

        assert monotonic.sleeps == [pytest.approx(0.2), pytest.approx(0.2)]

    @pytest.mark.asyncio
    async def test_unknown_category_rejected_up_front(self, ingestion_service, stub_client):
        with pytest.raises(UnknownCategoryError):
            await ingestion_service.ingest_all(["pokemon_cards", "stamps"])

        assert stub_client.download_calls == []

    @pytest.mark.asyncio
    async def test_recent_logs_newest_first(self, ingestion_service):
        await ingestion_service.ingest("pokemon_cards")
        await ingestion_service.ingest("video_games")

        logs = await ingestion_service.recent_logs(limit=10)
        assert [log.category for log in logs] == ["video_games", "pokemon_cards"]

        filtered = await ingestion_service.recent_logs(category="pokemon_cards")
        assert [log.category for log in filtered] == ["pokemon_cards"]
