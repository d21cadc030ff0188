"""
Price Charting API client

Search and detail requests have several historical endpoint shapes. They are
tried in order; a failing candidate is logged and the next one is tried, and
only the last candidate's failure is raised. The first 2xx response wins.
"""

import httpx
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from app.core.exceptions import PricingAPIError, UnknownCategoryError
from app.core.logging import redact_url

logger = logging.getLogger(__name__)

USER_AGENT = "CollectiblesPriceTracker/1.0"

Candidate = Tuple[str, Dict[str, str]]


class PriceChartingClient:
    """Async client for the Price Charting pricing API and CSV export"""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str,
        csv_url: str,
        categories: Mapping[str, str],
        timeout: float = 10.0,
        csv_timeout: float = 120.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.csv_url = csv_url
        self.category_slugs = dict(categories)
        self.timeout = timeout
        self.csv_timeout = csv_timeout
        self._client = http_client or httpx.AsyncClient(headers={"User-Agent": USER_AGENT})
        self._owns_client = http_client is None

    @property
    def categories(self) -> List[str]:
        return list(self.category_slugs)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _require_key(self) -> str:
        if not self.api_key:
            raise PricingAPIError("Price Charting API key not configured")
        return self.api_key

    def _search_candidates(self, name: str) -> List[Candidate]:
        key = self._require_key()
        url = f"{self.base_url}/api/products"
        return [
            (url, {"q": name, "t": key}),
            (url, {"q": name, "t": key, "format": "json"}),
            (url, {"q": name, "api_key": key}),
        ]

    def _detail_candidates(self, product_id: str) -> List[Candidate]:
        key = self._require_key()
        return [
            (f"{self.base_url}/api/product", {"id": product_id, "t": key}),
            (f"{self.base_url}/api/product/{product_id}", {"t": key}),
        ]

    async def _get_first_success(self, candidates: List[Candidate], what: str) -> Any:
        last_error = "no endpoints configured"

        for index, (url, params) in enumerate(candidates, start=1):
            label = f"{what} endpoint {index}/{len(candidates)}"
            try:
                response = await self._client.get(
                    url,
                    params=params,
                    headers={"Accept": "application/json"},
                    timeout=self.timeout,
                )
                if response.is_success:
                    return response.json()
                last_error = f"{response.status_code} {response.reason_phrase}"
                logger.warning(f"Price Charting {label} returned {last_error}: {redact_url(str(response.url))}")
            except (httpx.HTTPError, ValueError) as e:
                last_error = str(e) or e.__class__.__name__
                logger.warning(f"Price Charting {label} failed: {last_error}")

        raise PricingAPIError(f"Price Charting API error: {last_error}")

    async def search(self, name: str) -> Any:
        """Search products by name"""
        logger.info(f"Searching Price Charting API for: {name}")
        return await self._get_first_success(self._search_candidates(name), "search")

    async def get_detail(self, product_id: str) -> Any:
        """Fetch price details for one product id"""
        logger.info(f"Fetching Price Charting product {product_id}")
        return await self._get_first_success(self._detail_candidates(product_id), "detail")

    async def download_csv(self, category: str) -> str:
        """Download the price guide CSV export for a category"""
        if category not in self.category_slugs:
            raise UnknownCategoryError(category)

        params = {"t": self._require_key()}
        if self.category_slugs[category]:
            params["category"] = self.category_slugs[category]

        try:
            response = await self._client.get(
                self.csv_url,
                params=params,
                headers={"Accept": "text/csv"},
                timeout=self.csv_timeout,
                follow_redirects=True,
            )
        except httpx.TimeoutException as e:
            raise PricingAPIError(
                f"CSV download for {category} timed out after {self.csv_timeout:.0f}s"
            ) from e
        except httpx.HTTPError as e:
            raise PricingAPIError(f"CSV download for {category} failed: {str(e)}") from e

        if not response.is_success:
            raise PricingAPIError(
                f"Failed to download CSV: {response.status_code} {response.reason_phrase}"
            )

        logger.info(f"Downloaded {category} CSV with {len(response.text)} characters")
        return response.text
