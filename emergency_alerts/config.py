from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Gateway credentials are only ever read from here.
    """

    # env_file is only used as fallback, env vars take precedence
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./alerts.db"

    # Logging Configuration
    LOG_LEVEL: str = "INFO"

    # Messaging gateway - empty values make /health/ready report not_ready
    GATEWAY_ACCOUNT_SID: str = ""
    GATEWAY_AUTH_TOKEN: str = ""
    GATEWAY_FROM_NUMBER: str = ""
    GATEWAY_BASE_URL: str = "https://api.twilio.com/2010-04-01"
    GATEWAY_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0)

    # Alert listing
    ALERTS_DEFAULT_LIMIT: int = Field(default=10, ge=1)
    # Unset means a positive ?limit= is used as given
    ALERTS_MAX_LIMIT: Optional[int] = Field(default=None, ge=1)

    @property
    def gateway_configured(self) -> bool:
        return bool(
            self.GATEWAY_ACCOUNT_SID
            and self.GATEWAY_AUTH_TOKEN
            and self.GATEWAY_FROM_NUMBER
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every request.
    """
    return Settings()
