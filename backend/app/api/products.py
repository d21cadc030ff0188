"""
Local product search API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import Optional
import logging

from app.core.container import ServiceContainer, get_container
from app.core.exceptions import PriceTrackerError, ProductNotFoundError
from app.services.fuzzy_search_service import FuzzySearchService
from app.services.product_store import ProductStore
from app.schemas.common import ErrorResponse
from app.schemas.products import (
    ProductLookupRequest,
    ProductLookupResponse,
    ProductResponse,
    ProductSearchResponse,
    ProductStatsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


def get_search_service(container: ServiceContainer = Depends(get_container)) -> FuzzySearchService:
    """Dependency to get the fuzzy search service"""
    return container.search_service


def get_product_store(container: ServiceContainer = Depends(get_container)) -> ProductStore:
    """Dependency to get the product store"""
    return container.product_store


@router.get(
    "/search",
    response_model=ProductSearchResponse,
    responses={
        200: {"description": "Search completed"},
        400: {"description": "Missing query", "model": ErrorResponse},
        500: {"description": "Internal server error", "model": ErrorResponse}
    }
)
async def search_products(
    q: Optional[str] = Query(None, description="Product name to search for"),
    limit: int = Query(20, ge=1, le=100, description="Maximum number of results"),
    category: Optional[str] = Query(None, description="Restrict to one category"),
    search_service: FuzzySearchService = Depends(get_search_service)
):
    """
    Fuzzy search over the ingested price guide

    Results are ranked by name similarity to the query; the best match
    comes first.
    """
    try:
        if not q or not q.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Search query is required"
            )

        results = await search_service.search(q, limit=limit, category=category)
        return ProductSearchResponse(query=q, results=results, count=len(results))

    except HTTPException:
        raise
    except PriceTrackerError:
        raise
    except Exception as e:
        logger.error(f"Error searching products for '{q}': {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )


@router.post(
    "/lookup",
    response_model=ProductLookupResponse,
    responses={
        200: {"description": "Product found"},
        404: {"description": "Product not found", "model": ErrorResponse},
        500: {"description": "Internal server error", "model": ErrorResponse}
    }
)
async def lookup_product(
    request: ProductLookupRequest,
    store: ProductStore = Depends(get_product_store)
):
    """Get one product by its price guide id"""
    try:
        record = await store.find_by_id(request.productId.strip(), category=request.category)

        if record is None:
            raise ProductNotFoundError("Product not found")

        return ProductLookupResponse(product=ProductResponse.from_record(record))

    except HTTPException:
        raise
    except PriceTrackerError:
        raise
    except Exception as e:
        logger.error(f"Error looking up product {request.productId}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )


@router.get(
    "/stats",
    response_model=ProductStatsResponse,
    responses={
        200: {"description": "Product counts retrieved successfully"},
        500: {"description": "Internal server error", "model": ErrorResponse}
    }
)
async def get_product_stats(
    store: ProductStore = Depends(get_product_store)
):
    """Number of stored products per category"""
    try:
        counts = await store.count_by_category()
        return ProductStatsResponse(total=sum(counts.values()), categories=counts)

    except PriceTrackerError:
        raise
    except Exception as e:
        logger.error(f"Error fetching product stats: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )
