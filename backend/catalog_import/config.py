"""
Centralized application configuration.
"""
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "Catalog Import API"
    debug: bool = False
    cors_origins: str = ""

    # Database
    database_url: str = "sqlite:///./catalog.db"

    # Staging store (in-memory when unset)
    redis_url: Optional[str] = None

    # Import engine
    import_staging_ttl_seconds: int = 1800       # 30 minutes
    import_result_ttl_seconds: int = 604800      # 7 days
    import_max_rows: int = 5000
    import_batch_size: int = 100
    import_preview_rows: int = 100

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Return the cached application settings."""
    return Settings()
