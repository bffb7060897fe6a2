from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Optional
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./fulfillment_routing.db"

    # Database Connection Pool Settings (ignored for SQLite)
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # App Settings
    APP_NAME: str = "Fulfillment Routing Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Cache Settings
    REDIS_URL: Optional[str] = None  # e.g., "redis://localhost:6379/0"
    CACHE_ENABLED: bool = True
    ZONE_CACHE_TTL: int = 3600  # 1 hour for address -> zone resolution

    # Rate provider: ZONE_RATE_TABLE or FLAT
    RATE_PROVIDER: str = "ZONE_RATE_TABLE"
    FLAT_SHIPPING_RATE: float = 50.0
    FLAT_COD_SURCHARGE: float = 0.0

    # Distance estimator: PINCODE_PREFIX or HAVERSINE
    DISTANCE_ESTIMATOR: str = "HAVERSINE"

    # Origin scoring
    DEFAULT_ITEM_WEIGHT_KG: float = 0.5  # Used when the cart carries no weights
    DEFAULT_ORIGIN_PRIORITY: int = 999
    NO_ZONE_PENALTY: float = 1000.0  # Added when delivery zone or rate cannot be resolved
    SCORE_WEIGHT_DISTANCE: float = 0.4
    SCORE_WEIGHT_SHIPPING: float = 0.3
    SCORE_WEIGHT_PRIORITY: float = 0.2
    SCORE_WEIGHT_COURIER_OPTIONS: float = 0.1  # Subtracted per supported courier

    # Whole-cart routing budget; exceeding it fails the routing call
    ROUTING_TIMEOUT_SECONDS: float = 10.0

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    @field_validator('RATE_PROVIDER', 'DISTANCE_ESTIMATOR', mode='before')
    @classmethod
    def uppercase_choice(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
