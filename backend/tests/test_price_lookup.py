"""
Tests for cached price lookups, the daily call ceiling and portfolio lookups
"""

import pytest

from app.core.exceptions import InputValidationError, RateLimitExceededError
from app.services.price_lookup_service import (
    normalize_product_name,
    summarize_api_response,
)

from conftest import make_product

CHARIZARD_RESPONSE = {
    "status": "success",
    "products": [
        {
            "id": 6910,
            "product-name": "Charizard",
            "console-name": "Pokemon Base Set",
            "loose-price": "350.00",
            "cib-price": "1200.00",
            "new-price": None,
        },
        {"id": 6911, "product-name": "Charizard [1st Edition]"},
    ],
}


class TestNormalizeProductName:

    @pytest.mark.parametrize("name, expected", [
        ("  Charizard  ", "charizard"),
        ("Charizard #4 (Holo)!", "charizard 4 holo"),
        ("Blue-Eyes   White\tDragon", "blue-eyes white dragon"),
        ("Pokémon", "pokmon"),
        ("!!!", ""),
    ])
    def test_normalization(self, name, expected):
        assert normalize_product_name(name) == expected

    def test_truncated_to_100_characters(self):
        assert len(normalize_product_name("a" * 250)) == 100

    @pytest.mark.parametrize("name", [
        "Charizard #4 (Holo)!",
        "x" * 99 + " trailing words",
        "  Mixed   CASE  -- name__with_underscores ",
        "Pokémon Café",
    ])
    def test_idempotent(self, name):
        once = normalize_product_name(name)
        assert normalize_product_name(once) == once


class TestSummarizeApiResponse:

    def test_takes_first_product(self):
        summary = summarize_api_response(CHARIZARD_RESPONSE)

        assert summary.product_id == "6910"
        assert summary.product_name == "Charizard"
        assert summary.console_name == "Pokemon Base Set"
        assert summary.loose_price == 350.0
        assert summary.cib_price == 1200.0
        assert summary.new_price is None
        assert summary.source == "api"

    def test_underscore_keys_and_list_response(self):
        summary = summarize_api_response([{"id": "7", "product_name": "Mew", "image_url": "https://img/mew.png"}])

        assert summary.product_name == "Mew"
        assert summary.image_url == "https://img/mew.png"

    @pytest.mark.parametrize("data", [None, {}, {"products": []}, [], "unexpected"])
    def test_no_products(self, data):
        assert summarize_api_response(data) is None


class TestLookup:
    """Test suite for the cache in front of the upstream API"""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, price_service, stub_client):
        stub_client.search_results["charizard"] = CHARIZARD_RESPONSE

        first = await price_service.lookup("Charizard!")
        second = await price_service.lookup("  CHARIZARD ")

        assert first.cached is False
        assert first.data == CHARIZARD_RESPONSE
        assert second.cached is True
        assert second.data == CHARIZARD_RESPONSE
        assert stub_client.search_calls == ["charizard"]

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, price_service, stub_client, cache_store, clock):
        await price_service.lookup("Mew")
        record = await cache_store.get("mew")
        assert record.expires_at == record.cached_at.replace(day=2)

        clock.advance(hours=24)
        result = await price_service.lookup("Mew")

        assert result.cached is False
        assert stub_client.search_calls == ["mew", "mew"]
        assert (await cache_store.get("mew")).cached_at == clock.now

    @pytest.mark.asyncio
    async def test_get_cached_ignores_expired_rows(self, price_service, clock):
        await price_service.lookup("Mew")
        assert await price_service.get_cached("MEW") is not None

        clock.advance(hours=25)
        assert await price_service.get_cached("MEW") is None

    @pytest.mark.asyncio
    async def test_daily_ceiling_blocks_misses_but_serves_hits(self, price_service, stub_client):
        for name in ("Mew", "Mewtwo", "Eevee"):
            await price_service.lookup(name)

        with pytest.raises(RateLimitExceededError):
            await price_service.lookup("Snorlax")

        assert stub_client.search_calls == ["mew", "mewtwo", "eevee"]
        assert (await price_service.lookup("mew")).cached is True
        assert (await price_service.cache_status()).remaining_calls == 0

    @pytest.mark.asyncio
    async def test_ceiling_resets_at_utc_midnight(self, price_service, stub_client, clock):
        for name in ("Mew", "Mewtwo", "Eevee"):
            await price_service.lookup(name)

        clock.advance(hours=12)
        result = await price_service.lookup("Snorlax")

        assert result.cached is False
        assert stub_client.search_calls[-1] == "snorlax"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   ", "???"])
    async def test_empty_name_is_an_input_error(self, price_service, stub_client, name):
        with pytest.raises(InputValidationError):
            await price_service.lookup(name)
        assert stub_client.search_calls == []

    @pytest.mark.asyncio
    async def test_product_detail_counts_against_ceiling(self, price_service, stub_client):
        for name in ("Mew", "Mewtwo", "Eevee"):
            await price_service.lookup(name)

        with pytest.raises(RateLimitExceededError):
            await price_service.get_product_detail("6910")
        assert stub_client.detail_calls == []

    @pytest.mark.asyncio
    async def test_product_detail(self, price_service, stub_client):
        data = await price_service.get_product_detail(" 6910 ")

        assert data == {"status": "success", "id": "6910"}
        assert stub_client.detail_calls == ["6910"]

    @pytest.mark.asyncio
    async def test_cache_status(self, price_service, clock):
        await price_service.lookup("Mew")
        clock.advance(hours=25)
        await price_service.lookup("Eevee")

        status = await price_service.cache_status()

        assert status.total == 2
        assert status.active == 1
        assert status.expired == 1
        assert status.remaining_calls == 2
        assert [entry.product_name for entry in status.entries] == ["eevee"]


class TestPortfolioLookup:
    """Test suite for bulk portfolio lookups"""

    @pytest.mark.asyncio
    async def test_api_source(self, price_service, stub_client):
        stub_client.search_results["charizard"] = CHARIZARD_RESPONSE

        result = await price_service.lookup_portfolio(["Charizard", "Unknown Thing", "Charizard"])

        assert list(result.data) == ["Charizard"]
        assert result.data["Charizard"].loose_price == 350.0
        assert result.data["Charizard"].cached is False
        assert result.summary.total == 2
        assert result.summary.successful == 1
        assert result.summary.failed == 0
        assert stub_client.search_calls == ["charizard", "unknown thing"]

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self, price_service, stub_client):
        stub_client.search_results["mew"] = {"products": [{"id": 151, "product-name": "Mew"}]}
        stub_client.failing_names.add("broken")

        result = await price_service.lookup_portfolio(["Broken", "Mew"])

        assert list(result.data) == ["Mew"]
        assert result.summary.failed == 1
        assert result.summary.successful == 1

    @pytest.mark.asyncio
    async def test_rate_limited_names_are_counted(self, price_service):
        result = await price_service.lookup_portfolio(["a1", "a2", "a3", "a4", "a5"])

        assert result.summary.total == 5
        assert result.summary.rateLimited == 2
        assert result.data == {}

    @pytest.mark.asyncio
    async def test_upstream_misses_are_paced(self, price_service, monotonic):
        await price_service.lookup_portfolio(["Mew", "Eevee", "Mew"])

        assert monotonic.sleeps == [pytest.approx(0.1)]

    @pytest.mark.asyncio
    async def test_local_source(self, price_service, product_store, stub_client):
        await product_store.replace_partition("pokemon_cards", [
            make_product("1", "Charizard", loose_price="350"),
            make_product("2", "Blastoise"),
        ])

        result = await price_service.lookup_portfolio(["Charizard", "Zapdos"], source="local")

        assert list(result.data) == ["Charizard"]
        assert result.data["Charizard"].source == "local"
        assert result.data["Charizard"].similarity_score == 1.0
        assert result.data["Charizard"].loose_price == 350.0
        assert stub_client.search_calls == []

    @pytest.mark.asyncio
    async def test_empty_list_is_an_input_error(self, price_service):
        with pytest.raises(InputValidationError):
            await price_service.lookup_portfolio(["", "  "])
