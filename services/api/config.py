"""Configuration using pydantic-settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List, Optional

from core.types import PipelineConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="EXTRACTOR_",
        case_sensitive=False,
        extra="ignore",
    )

    # Marketplace
    marketplace_origin: str = "https://www.dhgate.com"
    marketplace_domain: str = "dhgate.com"

    # Timeouts (seconds)
    request_timeout_seconds: float = 25.0

    # Response cache: 10 hours
    cache_duration_seconds: float = 36000.0

    # Browser identity
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36"
    )
    user_agent_rotation: bool = False

    # Auxiliary endpoints
    review_page_size_min: int = 10
    review_page_size_max: int = 110
    recommendation_page_size: int = 10

    # Transport
    http2: bool = False
    verify_ssl: bool = True

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]

    def to_pipeline_config(self) -> PipelineConfig:
        return PipelineConfig(
            marketplace_origin=self.marketplace_origin,
            marketplace_domain=self.marketplace_domain,
            request_timeout_seconds=self.request_timeout_seconds,
            cache_duration_seconds=self.cache_duration_seconds,
            user_agent=self.user_agent,
            user_agent_rotation=self.user_agent_rotation,
            review_page_size_min=self.review_page_size_min,
            review_page_size_max=self.review_page_size_max,
            recommendation_page_size=self.recommendation_page_size,
            http2=self.http2,
            verify_ssl=self.verify_ssl,
        )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings
    """
    return Settings()
