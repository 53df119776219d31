"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///followers.db"
    FOLLOWERS_TABLE: str = "followers"
    RECORD_SHAPE: str = "extended"  # "minimal" or "extended"

    # Upstream API
    API_URL: str = "https://public.api.bsky.app/xrpc/app.bsky.graph.getFollowers"
    ACTOR: str = "did:plc:z72i7hdynmk6r22z27h6tvur"
    PAGE_LIMIT: int = 30
    REQUEST_TIMEOUT: float = 30.0

    # Retry policy
    MAX_RETRIES: int = 5
    BACKOFF_UNIT_SECONDS: float = 1.0

    # Pagination
    SOURCE_NAME: str = "bsky_followers"
    MAX_PAGES: Optional[int] = None

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # "text" or "json"


settings = Settings()
