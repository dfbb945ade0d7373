from __future__ import annotations

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_base_url: str = Field(
        "https://reflights.onrender.com", alias="REFLIGHTS_API_URL"
    )
    api_token: str = Field("", alias="REFLIGHTS_API_TOKEN")
    refresh_interval_s: int = Field(60, alias="REFLIGHTS_REFRESH_INTERVAL_S")
    http_timeout_s: Optional[float] = Field(
        None, alias="REFLIGHTS_HTTP_TIMEOUT_S"
    )
    currency: str = Field("AVAX", alias="REFLIGHTS_CURRENCY")
    log_level: str = Field("INFO", alias="REFLIGHTS_LOG_LEVEL")
    log_file: Optional[str] = Field(None, alias="REFLIGHTS_LOG_FILE")

    @field_validator("api_base_url")
    @classmethod
    def _url_non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("REFLIGHTS_API_URL must be a non-empty string")
        return v.strip().rstrip("/")

    @field_validator("refresh_interval_s")
    @classmethod
    def _interval_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("REFLIGHTS_REFRESH_INTERVAL_S must be greater than 0")
        return v

    @field_validator("http_timeout_s")
    @classmethod
    def _timeout_positive(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("REFLIGHTS_HTTP_TIMEOUT_S must be greater than 0")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


@lru_cache()
def get_settings() -> Settings:
    """Return application settings loaded from the environment."""
    return Settings()  # type: ignore[call-arg]


__all__ = ["Settings", "get_settings"]
