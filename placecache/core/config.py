"""Configuration settings for the place search cache service."""

from pydantic_settings import BaseSettings
from typing import Optional, List
import os


class Settings(BaseSettings):
    """Application settings."""

    # API Configuration
    app_name: str = "Bangkok Place Search Cache"
    app_version: str = "0.3.0"
    api_prefix: str = "/api/v1"
    debug: bool = False

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1  # Cache tiers are per-process

    # CORS
    cors_origins: List[str] = ["http://localhost:8081", "http://localhost:19006"]

    # Google Places Configuration
    google_places_api_key: Optional[str] = None
    google_places_base_url: str = "https://maps.googleapis.com/maps/api/place"
    places_search_radius_m: int = 5000  # 5km radius for text search
    places_provider_timeout: float = 10.0

    # Durable tier (Redis)
    redis_url: Optional[str] = "redis://localhost:6379"
    durable_max_entries: int = 50  # Housekeeping cap for durable records
    durable_ttl_seconds: Optional[int] = 86400  # Physical expiry, independent of freshness

    # Fast tier (in-process)
    fast_max_entries: int = 200

    # Freshness windows
    fast_cache_window_ms: int = 300000  # 5 minutes
    durable_cache_window_ms: int = 900000  # 15 minutes

    # Similarity matching
    similarity_min_stored_length: int = 3
    similarity_max_extra_chars: int = 3
    similarity_radius_m: Optional[float] = None  # None = match regardless of location

    # Nearby search cache
    nearby_proximity_m: float = 100.0  # Reuse cached origins within this distance
    nearby_radius_tolerance_m: int = 100  # ...searched with a radius this close

    # Debounced query controller
    debounce_delay_ms: int = 800
    min_query_length: int = 3

    # Admin
    admin_api_token: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    class Config:
        env_file = ".env"
        env_prefix = "PLACES_"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields in .env file


# Create settings instance
settings = Settings()

# Override with environment variables
if os.getenv("GOOGLE_PLACES_API_KEY"):
    settings.google_places_api_key = os.getenv("GOOGLE_PLACES_API_KEY").strip()

if os.getenv("REDIS_URL"):
    settings.redis_url = os.getenv("REDIS_URL")

if os.getenv("ADMIN_API_TOKEN") and not settings.admin_api_token:
    settings.admin_api_token = os.getenv("ADMIN_API_TOKEN").strip()
