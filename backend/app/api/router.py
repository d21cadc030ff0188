"""
Main API router that includes all endpoint routers
"""

from fastapi import APIRouter

from app.api import ingestion, products, prices, scheduler_status

# Create main API router
api_router = APIRouter(prefix="/api/v1")

# Include all route modules
api_router.include_router(ingestion.router)
api_router.include_router(products.router)
api_router.include_router(prices.router)
api_router.include_router(scheduler_status.router)

# Add a simple health check for the API
@api_router.get("/health")
async def api_health():
    """API health check endpoint"""
    return {
        "status": "healthy",
        "message": "Collectibles Price Tracker API is running",
        "endpoints": {
            "ingestion": "/api/v1/ingestion",
            "products": "/api/v1/products",
            "prices": "/api/v1/prices",
            "scheduler": "/api/v1/scheduler"
        }
    }
