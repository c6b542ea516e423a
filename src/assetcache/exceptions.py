"""
Custom exception hierarchy for the asset cache.

All exceptions inherit from AssetCacheError, which provides optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any


class AssetCacheError(Exception):
    """Base exception for all asset cache errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(AssetCacheError):
    """Raised when configuration is invalid or missing.

    Examples:
        - No cache directory configured for a command that needs one
    """

    pass


class CacheWriteError(AssetCacheError):
    """Raised when the primary file of a cache entry cannot be written.

    Context should include:
        - path: The file that failed to be written
        - error: The underlying OS error message
    """

    pass


class TemplateError(AssetCacheError):
    """Raised when the container template cannot be read.

    Context should include:
        - path: The template path that was tried
    """

    pass
