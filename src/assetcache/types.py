"""
Core types for the asset cache.

This module defines the small value types shared by every component:
- GzipMode: who is responsible for compressing served assets
- Zone: the three cache directories (root, js, css)
- StatsSnapshot: frozen result of a cache directory scan
- epoch_now() timestamp helper
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


def epoch_now() -> float:
    """Get current time as seconds since the epoch."""
    return time.time()


class GzipMode(str, Enum):
    """How compressed variants of cached assets are produced.

    SERVER_DELEGATED: each entry is a small executable container plus a raw
    `.none` payload sidecar.
    SELF_MANAGED: the payload is stored directly, optionally with a `.gz`
    precompressed sibling.
    """

    SERVER_DELEGATED = "server_delegated"
    SELF_MANAGED = "self_managed"


class Zone(str, Enum):
    """Cache directories, relative to the cache root."""

    ROOT = ""
    JS = "js"
    CSS = "css"


ZONES: tuple[Zone, ...] = (Zone.ROOT, Zone.JS, Zone.CSS)

# Sidecar suffixes
RAW_SUFFIX = ".none"
GZIP_SUFFIX = ".gz"

# Marker files
NOINDEX_FILENAME = "index.html"
ACCESS_POLICY_FILENAME = ".htaccess"


@dataclass(frozen=True)
class StatsSnapshot:
    """Aggregate statistics for the cache contents.

    Attributes:
        count: Number of logical entries counted by the active counting rules.
        total_bytes: Size of every valid cache file found by the scan.
        scanned_at: Unix timestamp when the scan finished (0 when unavailable).
    """

    count: int
    total_bytes: int
    scanned_at: float

    @classmethod
    def unavailable(cls) -> StatsSnapshot:
        """Zero snapshot returned when the cache cannot be used."""
        return cls(count=0, total_bytes=0, scanned_at=0.0)

    @property
    def is_available(self) -> bool:
        return self.scanned_at > 0

    @property
    def scanned_at_datetime(self) -> datetime | None:
        if not self.is_available:
            return None
        return datetime.fromtimestamp(self.scanned_at, tz=timezone.utc)

    def to_dict(self) -> dict[str, int | float]:
        return {
            "count": self.count,
            "total_bytes": self.total_bytes,
            "scanned_at": self.scanned_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, int | float]) -> StatsSnapshot:
        return cls(
            count=int(data["count"]),
            total_bytes=int(data["total_bytes"]),
            scanned_at=float(data["scanned_at"]),
        )
