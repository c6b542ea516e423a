"""
Cache file naming.

Maps a content hash and extension to the file name (relative to the cache
root) that stores it under the active gzip mode.
"""

from __future__ import annotations

from assetcache.types import GzipMode, Zone

CONTAINER_EXTENSION = "php"

# Extensions that get their own zone in self-managed mode
ZONED_EXTENSIONS = {"js": Zone.JS, "css": Zone.CSS}


class PathPolicy:
    """Deterministic file naming for cache entries."""

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix

    def resolve_filename(self, content_hash: str, extension: str, mode: GzipMode) -> str:
        """Resolve the file name for an entry.

        Args:
            content_hash: Hash of the cached content.
            extension: Asset extension (js, css, txt, ...).
            mode: Active gzip mode.

        Returns:
            File name relative to the cache root, using "/" as separator.
        """
        if mode is GzipMode.SERVER_DELEGATED:
            return f"{self.prefix}{content_hash}.{CONTAINER_EXTENSION}"

        zone = ZONED_EXTENSIONS.get(extension)
        if zone is not None:
            return f"{zone.value}/{self.prefix}{content_hash}.{extension}"
        return f"{self.prefix}{content_hash}.{extension}"

    @staticmethod
    def zone_of(filename: str) -> Zone:
        """Return the zone a resolved file name lives in."""
        head, sep, _ = filename.partition("/")
        if not sep:
            return Zone.ROOT
        return Zone(head)
