from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    starling_api_url: str = Field(default="https://api-sandbox.starlingbank.com", alias="STARLING_API_URL")
    starling_api_token: Optional[str] = Field(default=None, alias="STARLING_API_TOKEN")

    http_timeout_s: float = Field(default=5.0, gt=0, alias="HTTP_TIMEOUT_S")

    retry_max_retries: int = Field(default=3, ge=0, alias="RETRY_MAX_RETRIES")
    retry_base_delay_s: float = Field(default=1.0, ge=0, alias="RETRY_BASE_DELAY_S")

    roundup_lookback_days: int = Field(default=7, ge=1, alias="ROUNDUP_LOOKBACK_DAYS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    def validate_required(self) -> None:
        if not self.starling_api_url:
            raise ValueError("STARLING_API_URL is required")

        if not self.starling_api_token:
            raise ValueError("STARLING_API_TOKEN is required")


@lru_cache
def load_settings() -> Settings:
    settings = Settings()
    settings.validate_required()
    return settings
