# backend/app/core/config.py
"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    APP_NAME: str = "endpoint-security-scanner"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # API
    API_PREFIX: str = "/api/v1"
    ALLOWED_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Storage
    DATA_DIR: str = Field(
        default=".scanner-data",
        description="Directory holding the persisted JSON collections",
    )

    # HTTP probe
    HTTP_PROBE_TIMEOUT: float = 10.0
    FOLLOW_REDIRECTS: bool = True
    VERIFY_TLS: bool = True
    USER_AGENT: str = "endpoint-security-scanner/1.0"
    RESPONSE_SAMPLE_LENGTH: int = 500

    # Port probe
    PORT_PROBE_TIMEOUT: float = 3.0
    PORT_BANNER_TIMEOUT: float = 1.0

    # Scan loop
    PAUSE_POLL_INTERVAL: float = 0.1
    STOP_SETTLE_DELAY: float = 0.5

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == "production"

    @property
    def allowed_origins(self) -> list:
        """ALLOWED_ORIGINS split into a list."""
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
