"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Settings are frozen: every cache component receives the same immutable
value at construction and never reads ambient globals.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from assetcache.types import GzipMode


class Settings(BaseSettings):
    """Asset cache settings loaded from environment variables.

    Optional:
        CACHE_DIR: Cache root directory. When unset the cache is unavailable.
        CACHE_URL: Public URL base of the cache root
        GZIP_MODE: server_delegated or self_managed
        CACHEFILE_PREFIX: Prefix every cache file name carries
        PLUGIN_DIR: Directory holding config/default.php (container template)
        CONTENT_DIR: Directory holding the access policy override template
        SITE_URL: Site root used for the post-purge warming request
        MULTISITE: Whether the host serves a network of sites
        BLOG_ID: Current site id when MULTISITE is on
        STATS_TTL_SECONDS: Default lifetime of the stats memo
        STATS_MIN_COUNT: Minimum entry count before a scan is memoized
        STATS_MEMO_FILE: Optional JSON file for a cross-process stats memo
        WARMUP_TIMEOUT: Timeout in seconds for the warming request
        LOG_LEVEL: Logging level
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Storage
    CACHE_DIR: Path | None = Field(default=None, description="Cache root directory")
    CACHE_URL: str = Field(default="", description="Public URL base of the cache root")
    GZIP_MODE: GzipMode = Field(
        default=GzipMode.SERVER_DELEGATED,
        description="Who produces compressed variants of cached assets",
    )
    CACHEFILE_PREFIX: str = Field(default="ao_", description="Cache file name prefix")

    # Host integration
    PLUGIN_DIR: Path | None = Field(
        default=None, description="Directory containing config/default.php"
    )
    CONTENT_DIR: Path | None = Field(
        default=None, description="Host content directory (override templates)"
    )
    SITE_URL: str = Field(default="", description="Site root for cache warming")
    MULTISITE: bool = Field(default=False, description="Host is a multisite network")
    BLOG_ID: int = Field(default=1, ge=1, description="Current site id")

    # Statistics
    STATS_TTL_SECONDS: int = Field(
        default=3600, ge=0, description="Default stats memo lifetime in seconds"
    )
    STATS_MIN_COUNT: int = Field(
        default=100, ge=0, description="Scans with count <= this are not memoized"
    )
    STATS_MEMO_FILE: Path | None = Field(
        default=None, description="JSON file for a shared stats memo"
    )

    # Warming
    WARMUP_TIMEOUT: float = Field(
        default=5.0, gt=0.0, description="Warming request timeout in seconds"
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )

    @field_validator("CACHEFILE_PREFIX")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Prefix must be non-empty and must not contain a path separator."""
        if not v:
            raise ValueError("CACHEFILE_PREFIX must not be empty")
        if "/" in v or "\\" in v:
            raise ValueError("CACHEFILE_PREFIX must not contain a path separator")
        return v

    @field_validator("CACHE_DIR", mode="before")
    @classmethod
    def empty_cache_dir_is_unset(cls, v: object) -> object:
        """An empty CACHE_DIR means no cache is configured."""
        if v == "":
            return None
        return v

    @field_validator("CACHE_DIR")
    @classmethod
    def normalize_cache_dir(cls, v: Path | None) -> Path | None:
        """Store the cache root as an absolute path."""
        if v is None:
            return None
        return v.expanduser().absolute()

    @property
    def cache_configured(self) -> bool:
        """Whether a cache root has been configured."""
        return self.CACHE_DIR is not None

    def redacted_display(self) -> dict[str, str | int | float | bool | None]:
        """Return settings in a printable form."""

        def path_str(value: Path | None) -> str | None:
            return str(value) if value is not None else None

        return {
            "CACHE_DIR": path_str(self.CACHE_DIR),
            "CACHE_URL": self.CACHE_URL,
            "GZIP_MODE": self.GZIP_MODE.value,
            "CACHEFILE_PREFIX": self.CACHEFILE_PREFIX,
            "PLUGIN_DIR": path_str(self.PLUGIN_DIR),
            "CONTENT_DIR": path_str(self.CONTENT_DIR),
            "SITE_URL": self.SITE_URL,
            "MULTISITE": self.MULTISITE,
            "BLOG_ID": self.BLOG_ID,
            "STATS_TTL_SECONDS": self.STATS_TTL_SECONDS,
            "STATS_MIN_COUNT": self.STATS_MIN_COUNT,
            "STATS_MEMO_FILE": path_str(self.STATS_MEMO_FILE),
            "WARMUP_TIMEOUT": self.WARMUP_TIMEOUT,
            "LOG_LEVEL": self.LOG_LEVEL,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
