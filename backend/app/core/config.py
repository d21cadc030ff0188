"""
Application configuration settings
"""

from typing import Dict, List, Optional
from pydantic_settings import BaseSettings


DEFAULT_CATEGORIES: Dict[str, str] = {
    "video_games": "",
    "pokemon_cards": "pokemon-cards",
    "magic_cards": "magic-cards",
    "yugioh_cards": "yugioh-cards",
}


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Collectibles Price Tracker"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: Optional[str] = None
    DATABASE_ECHO: bool = False
    STORAGE_BACKEND: str = "database"  # 'database' or 'memory'

    # CORS (comma separated)
    ALLOWED_HOSTS: str = "*"

    # Supabase
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None

    # Price Charting
    PRICE_CHARTING_API_KEY: Optional[str] = None
    PRICE_CHARTING_BASE_URL: str = "https://www.pricecharting.com"
    PRICE_CHARTING_CSV_URL: str = "https://www.pricecharting.com/price-guide/download-custom"
    PRICE_CHARTING_CATEGORIES: Dict[str, str] = DEFAULT_CATEGORIES
    HTTP_TIMEOUT_SECONDS: float = 10.0
    CSV_DOWNLOAD_TIMEOUT_SECONDS: float = 120.0

    # Ingestion
    INGESTION_BATCH_SIZE: int = 1000
    INGESTION_BUCKET_CAPACITY: int = 1
    INGESTION_BUCKET_REFILL_PER_SECOND: float = 5.0

    # Search
    SEARCH_RESULT_LIMIT: int = 20
    SEARCH_STRATEGY_LIMIT: int = 50
    SEARCH_SIMILARITY_FLOOR: float = 0.3
    LOCAL_MATCH_FLOOR: float = 0.5

    # Price cache and upstream limits
    PRICE_CACHE_TTL_HOURS: int = 24
    PRICE_API_DAILY_LIMIT: int = 1000
    PORTFOLIO_MAX_NAMES: int = 50
    UPSTREAM_BUCKET_CAPACITY: int = 5
    UPSTREAM_BUCKET_REFILL_PER_SECOND: float = 10.0  # ~100ms between sustained calls

    # Scheduler
    SCHEDULER_ENABLED: bool = False
    INGESTION_CRON_HOUR: int = 3
    INGESTION_CRON_MINUTE: int = 0

    @property
    def cors_origins(self) -> List[str]:
        return [host.strip() for host in self.ALLOWED_HOSTS.split(",") if host.strip()]

    @property
    def uses_database(self) -> bool:
        return self.STORAGE_BACKEND == "database" and bool(self.DATABASE_URL)

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


# Create settings instance
settings = Settings()
