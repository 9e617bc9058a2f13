"""
Application configuration via pydantic-settings.
All config read from environment variables with sensible defaults for local dev.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "balloon-tracker"
    app_version: str = "0.1.0"
    environment: str = Field(default="development", pattern=r"^(development|staging|production)$")
    debug: bool = False

    # Redis (empty = run without the weather cache)
    redis_url: str = ""

    # CORS
    cors_origins: list[str] = Field(default=["http://localhost:3000"])

    # Sentry
    sentry_dsn: str = ""
    sentry_traces_sample_rate: float = Field(default=0.1, ge=0.0, le=1.0)

    # Snapshot feed (one JSON array per hour, 00.json = most recent)
    snapshot_base_url: str = "https://a.windbornesystems.com/treasure"
    snapshot_hours_back: int = Field(default=24, ge=1, le=24)
    snapshot_timeout_s: float = Field(default=8.0, gt=0)
    snapshot_max_concurrency: int = Field(default=24, ge=1)

    # Weather cache
    weather_cache_ttl_seconds: int = Field(
        default=900,
        ge=0,
        validation_alias=AliasChoices("weather_cache_ttl_seconds", "redis_weather_ttl_seconds"),
    )
    weather_cache_namespace: str = "wx"

    # Grid clustering / batching
    grid_degrees: float = Field(default=1.0, gt=0)
    weather_batch_size: int = Field(default=50, ge=1)

    # Weather provider (Open-Meteo)
    # Free tier allows ~600 calls/min; we stay under it with one call per batch.
    weather_api_url: str = "https://api.open-meteo.com/v1/forecast"
    weather_api_timeout_s: float = Field(default=10.0, gt=0)
    weather_rate_limit_window_s: float = Field(default=60.0, gt=0)
    weather_rate_limit_max_requests: int = Field(default=500, ge=1)
    weather_retry_max_attempts: int = Field(default=5, ge=1)
    weather_retry_base_delay_s: float = Field(default=0.5, ge=0)

    # Whole-request wall clock bound
    enrichment_timeout_s: float = Field(default=25.0, gt=0)

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore", "populate_by_name": True}


settings = Settings()
