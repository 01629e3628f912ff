"""Application configuration using Pydantic Settings."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Persistent store
    DATABASE_URL: str = "sqlite+aiosqlite:///./va_sync.db"

    # Upstream VA API (read-only)
    VA_API_BASE_URL: str = "https://api.va.gov"
    VA_SESSION_COOKIE: str = ""
    VA_KEY_INFLECTION: str = "camel"

    # VetClaim backend
    BACKEND_BASE_URL: str = "https://vetclaimservices.com/v1"
    CLIENT_VERSION: str = "1.2.0"

    # Scheduling
    FETCH_COOLDOWN_SECONDS: float = 60.0
    SYNC_INTERVAL_SECONDS: float = 300.0  # 5 minutes

    # None keeps the httpx transport default
    HTTP_TIMEOUT_SECONDS: Optional[float] = None

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


# Global settings instance
settings = Settings()
