"""
Price lookup API endpoints backed by the Price Charting API
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import Optional
import logging

from app.core.container import ServiceContainer, get_container
from app.core.exceptions import PriceTrackerError
from app.services.price_lookup_service import PriceLookupService
from app.schemas.common import DataResponse, ErrorResponse
from app.schemas.prices import (
    CacheStatusResponse,
    PortfolioLookupRequest,
    PortfolioLookupResponse,
    PriceSearchResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/prices", tags=["prices"])


def get_price_service(container: ServiceContainer = Depends(get_container)) -> PriceLookupService:
    """Dependency to get the price lookup service"""
    return container.price_service


@router.get(
    "/search",
    response_model=PriceSearchResponse,
    responses={
        200: {"description": "Price data retrieved"},
        400: {"description": "Missing product name", "model": ErrorResponse},
        429: {"description": "Daily API limit reached", "model": ErrorResponse},
        502: {"description": "Upstream API error", "model": ErrorResponse}
    }
)
async def search_prices(
    q: Optional[str] = Query(None, description="Product name"),
    price_service: PriceLookupService = Depends(get_price_service)
):
    """
    Search the pricing API for a product name

    Responses are cached per normalized name for 24 hours; cached responses
    do not count against the daily API limit.
    """
    try:
        result = await price_service.lookup(q or "")
        return PriceSearchResponse(cached=result.cached, data=result.data)

    except PriceTrackerError:
        raise
    except Exception as e:
        logger.error(f"Error searching prices for '{q}': {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )


@router.get(
    "/product/{product_id}",
    response_model=DataResponse,
    responses={
        200: {"description": "Product detail retrieved"},
        429: {"description": "Daily API limit reached", "model": ErrorResponse},
        502: {"description": "Upstream API error", "model": ErrorResponse}
    }
)
async def get_product_prices(
    product_id: str,
    price_service: PriceLookupService = Depends(get_price_service)
):
    """Current upstream prices for one product id"""
    try:
        data = await price_service.get_product_detail(product_id)
        return DataResponse(data=data)

    except PriceTrackerError:
        raise
    except Exception as e:
        logger.error(f"Error fetching product {product_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )


@router.post(
    "/portfolio",
    response_model=PortfolioLookupResponse,
    responses={
        200: {"description": "Portfolio prices retrieved"},
        400: {"description": "Invalid product list", "model": ErrorResponse},
        500: {"description": "Internal server error", "model": ErrorResponse}
    }
)
async def lookup_portfolio_prices(
    request: PortfolioLookupRequest,
    container: ServiceContainer = Depends(get_container),
    price_service: PriceLookupService = Depends(get_price_service)
):
    """
    Best price match for each portfolio item name

    Names that match nothing, or whose lookup failed, are left out of
    ``data``; the summary counts them.
    """
    try:
        max_names = container.settings.PORTFOLIO_MAX_NAMES
        if len(request.productNames) > max_names:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Maximum {max_names} products per request"
            )

        result = await price_service.lookup_portfolio(request.productNames, source=request.source)
        return PortfolioLookupResponse(data=result.data, summary=result.summary)

    except HTTPException:
        raise
    except PriceTrackerError:
        raise
    except Exception as e:
        logger.error(f"Error looking up portfolio prices: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )


@router.get(
    "/cache-status",
    response_model=CacheStatusResponse,
    responses={
        200: {"description": "Cache status retrieved"},
        500: {"description": "Internal server error", "model": ErrorResponse}
    }
)
async def get_cache_status(
    price_service: PriceLookupService = Depends(get_price_service)
):
    """Active and expired entries among the most recent cache rows"""
    try:
        return CacheStatusResponse(cache=await price_service.cache_status())

    except PriceTrackerError:
        raise
    except Exception as e:
        logger.error(f"Error fetching cache status: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )
