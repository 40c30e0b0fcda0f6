from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_HANDOFF_FIELDS = (
    "slack_webhook_url",
    "ghl_api_key",
    "ghl_location_id",
    "ghl_custom_field_transcript",
)


class Settings(BaseSettings):
    """Application configuration driven by environment variables."""

    cors_allowed_origins: str | None = None
    rate_limit_per_minute: int = 60
    log_level: str = "INFO"
    http_timeout_seconds: float = 10.0
    slack_webhook_url: str | None = None
    ghl_api_key: str | None = None
    ghl_location_id: str | None = None
    ghl_custom_field_transcript: str | None = None
    ghl_base_url: str = "https://rest.gohighlevel.com/v1"

    model_config = SettingsConfigDict(env_file=".env", env_prefix="APP_", case_sensitive=False)

    @field_validator("rate_limit_per_minute")
    @classmethod
    def validate_rate_limit(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("rate_limit_per_minute must be greater than zero")
        return value

    @field_validator("http_timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("http_timeout_seconds must be greater than zero")
        return value

    @field_validator("ghl_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def allowed_origins(self) -> List[str]:
        if not self.cors_allowed_origins:
            return []
        return [origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()]

    @property
    def missing_handoff_settings(self) -> List[str]:
        """Environment names of the unset settings the handoff route needs."""

        prefix = self.model_config.get("env_prefix", "")
        return [f"{prefix}{name}".upper() for name in _HANDOFF_FIELDS if not getattr(self, name)]


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
