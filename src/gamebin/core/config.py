"""GameBin settings.

Values come from ``GAMEBIN_*`` environment variables or a ``.env`` file and
are validated once; ``get_settings()`` hands out the same instance afterwards.
List settings accept JSON arrays or comma-separated text.
"""

import json
from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_MASTER_KEY = "change-me-set-GAMEBIN_MASTER_KEY"


class Settings(BaseSettings):
    """Runtime configuration for the API server and the CLI."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GAMEBIN_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_name: str = "GameBin"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000

    # Remote Document Store Settings
    api_endpoint: str = "https://api.jsonbin.io/v3"
    master_key: str = Field(
        default=DEFAULT_MASTER_KEY,
        description="JSONBin master key sent as X-Master-Key",
    )
    bin_ids: dict[str, str] = Field(
        default_factory=dict,
        description="Per-collection bin id overrides, e.g. {\"animals\": \"...\"}",
    )
    request_timeout_seconds: float = 15.0

    # Request Cache Settings
    cache_ttl_seconds: int = 300  # 5 minutes
    cache_sweep_interval_seconds: int = 60
    cache_file: str = "./gb_data/collection_cache.json"
    cache_persist_enabled: bool = True

    # Rate Limiting Settings
    rate_limit_per_hour: int = 200

    # Collection Behaviour
    strict_bulk: bool = Field(
        default=False,
        description="Fail a bulk batch when an update/delete targets a missing id",
    )
    permissions: Annotated[list[str], NoDecode] = Field(default=["read", "write", "delete"])

    # Field Encryption Settings
    encryption_enabled: bool = False
    encryption_key: str = Field(
        default="change-me-in-production-use-openssl-rand-hex-32",
        description="Secret key for sensitive field encryption before upload",
    )
    sensitive_fields: Annotated[list[str], NoDecode] = Field(default=["content", "title", "notes", "description"])

    # CORS Settings
    cors_origins: Annotated[list[str], NoDecode] = Field(default=["http://localhost:3000", "http://localhost:8000"])

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    @field_validator("cors_origins", "permissions", "sensitive_fields", mode="before")
    @classmethod
    def parse_list(cls, v: str | list[str]) -> list[str]:
        """Parse list settings from a JSON array or comma-separated text."""
        if isinstance(v, str) and v.strip().startswith("["):
            return json.loads(v)
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("api_endpoint")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the endpoint so paths can be appended with '/'."""
        return v.rstrip("/")

    @field_validator("rate_limit_per_hour", "cache_ttl_seconds", "cache_sweep_interval_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Reject zero or negative limits and intervals."""
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @property
    def is_production(self) -> bool:
        """True when GAMEBIN_ENVIRONMENT is production."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """True when GAMEBIN_ENVIRONMENT is development."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """True when GAMEBIN_ENVIRONMENT is testing."""
        return self.environment == "testing"

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a setting by name.

        Args:
            key: Setting attribute name (e.g. "api_endpoint").
            default: Value returned when the setting does not exist.

        Returns:
            The setting value or the default.
        """
        return getattr(self, key, default)

    def secure_headers(self) -> dict[str, str]:
        """Headers sent with every request to the remote document store.

        Returns:
            Header mapping including the master key credential.
        """
        return {
            "Content-Type": "application/json",
            "X-Master-Key": self.master_key,
            "X-Requested-With": "XMLHttpRequest",
        }


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    return Settings()
