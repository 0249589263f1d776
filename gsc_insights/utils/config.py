"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.

Rate ceilings here are advisory inputs: the API does not report them,
so batch operations read their delay and batch size from these settings.
"""

from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings

# Upstream per-request row limit for Search Analytics
ROW_CEILING = 25_000


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Authentication context (credentials are acquired elsewhere)
    GOOGLE_AUTH_MODE: str = "service_account"
    GOOGLE_AUTH_IDENTITY: str = "unknown service account"
    GSC_ACCESS_TOKEN: Optional[str] = None

    # Optional - enables CrUX (Core Web Vitals) sections
    GOOGLE_CLOUD_API_KEY: Optional[str] = None

    # Application Settings
    LOG_LEVEL: str = "INFO"
    API_TIMEOUT: int = 60

    # Retry
    RETRY_MAX_ATTEMPTS: int = 4
    RETRY_BASE_DELAY: float = 1.0

    # Pagination
    MAX_ROWS: int = 100_000
    PAGE_SIZE: int = ROW_CEILING

    # Batch inspection (URL Inspection API: ~1 req/sec, 2000/day)
    INSPECTION_DELAY: float = 1.0
    MAX_BATCH_SIZE: int = 100
    DAILY_INSPECTION_QUOTA: int = 2000

    # Composite reports
    AGGREGATOR_CONCURRENCY: int = 4

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase

    @property
    def has_crux(self) -> bool:
        """Check if the CrUX API key is configured."""
        return bool(self.GOOGLE_CLOUD_API_KEY)

    @property
    def page_size(self) -> int:
        """Page size clamped to the upstream row ceiling."""
        return max(1, min(self.PAGE_SIZE, ROW_CEILING))

    @property
    def retry_config(self):
        """Retry bounds for the Backoff Retrier."""
        from gsc_insights.collector.retry import RetryConfig

        return RetryConfig(
            max_attempts=self.RETRY_MAX_ATTEMPTS,
            base_delay=self.RETRY_BASE_DELAY,
        )


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
