from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Application
    app_name: str = "Shortlink"
    app_version: str = "1.0.0"

    # Database
    database_url: str = "sqlite:///./shortlink.db"

    # Public address used to build short URLs.
    # When unset, scheme and host are taken from the incoming request.
    public_base_url: Optional[str] = None

    # Slug rules
    slug_length: int = 6  # Length of auto-generated slugs (4-10)
    custom_slug_max_length: int = 200
    rename_slug_max_length: int = 10
    max_slug_attempts: int = 10

    # Authentication: bearer token -> principal id
    # e.g. API_TOKENS='{"s3cr3t": "user_1"}'
    api_tokens: Dict[str, str] = {}

    # Click queue settings
    queue_backend: str = "memory"  # Options: "memory", "redis_streams"
    redis_url: str = "redis://localhost:6379/0"
    queue_name: str = "url_clicks"
    queue_consumer_group: str = "click_workers"
    queue_max_size: int = 10000  # In-memory queue bound, events beyond it are dropped
    queue_batch_size: int = 100
    queue_block_ms: int = 1000
    click_worker_in_process: bool = True

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
