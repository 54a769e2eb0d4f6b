"""Configuration management for reflib.

Settings are read from environment variables (case-insensitive) and an
optional ``.env`` file in the working directory.

Example:
    >>> from reflib_common import get_settings
    >>> settings = get_settings()
    >>> settings.check_skip_days
    7
"""

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
VALID_LOG_FORMATS = {"console", "json"}


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Library
    library_path: str = "~/.local/share/reflib/library.json"

    # Remote providers
    crossref_mailto: Optional[str] = None
    pubmed_email: Optional[str] = None
    pubmed_api_key: Optional[str] = None
    http_timeout: float = 30.0

    # Check behaviour
    check_skip_days: int = 7
    check_metadata: bool = True

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(VALID_LOG_LEVELS)}, got {value!r}")
        return upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        lower = value.lower()
        if lower not in VALID_LOG_FORMATS:
            raise ValueError(
                f"log_format must be one of {sorted(VALID_LOG_FORMATS)}, got {value!r}"
            )
        return lower


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance (cached)."""
    return Settings()
