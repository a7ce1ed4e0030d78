"""
Application settings and configuration management.

This module handles partner credentials, the default analytics sub ID and the
runtime knobs of the gateway, using Pydantic settings management for type
safety and validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Partner credentials are stored as SecretStr to prevent accidental logging.
    Settings are validated on load and cached for performance.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Partner credentials
    coupang_access_key: Optional[SecretStr] = Field(default=None, alias="COUPANG_ACCESS_KEY")
    coupang_secret_key: Optional[SecretStr] = Field(default=None, alias="COUPANG_SECRET_KEY")

    # Partner API
    coupang_api_base_url: str = Field(
        default="https://api-gateway.coupang.com",
        alias="COUPANG_API_BASE_URL",
    )
    default_sub_id: Optional[str] = Field(default=None, alias="COUPANG_DEFAULT_SUB_ID")
    deeplink_use_default_sub_id: bool = Field(default=False, alias="DEEPLINK_USE_DEFAULT_SUB_ID")

    # Application Configuration
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        alias="APP_ENV"
    )
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        alias="LOG_LEVEL"
    )

    # Transport
    request_timeout_seconds: int = Field(default=30, alias="REQUEST_TIMEOUT_SECONDS")
    max_retries: int = Field(default=3, alias="MAX_RETRIES")

    # Device identity
    device_store_path: Path = Field(
        default=Path(".partner_discovery/device_identity.json"),
        alias="DEVICE_STORE_PATH",
    )

    # HTTP surface
    api_host: str = Field(default="127.0.0.1", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")

    @field_validator("default_sub_id", mode="before")
    @classmethod
    def blank_sub_id_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty sub ID as unset."""
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 1:
            raise ValueError("MAX_RETRIES must be at least 1")
        return v

    @property
    def is_configured(self) -> bool:
        """Whether both partner credentials are present."""
        return bool(
            self.coupang_access_key
            and self.coupang_secret_key
            and self.coupang_access_key.get_secret_value()
            and self.coupang_secret_key.get_secret_value()
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
