"""
Cache statistics.

A full scan walks the root, js and css zones, keeps only valid cache files
and counts the files matched by a per-mode counting-rule table. Scan results
are memoized for a TTL, but only once the cache holds more than
STATS_MIN_COUNT entries so a near-empty snapshot taken while the cache warms
up is never served for an hour.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping

import orjson

from assetcache.cache.guard import DirectoryGuard
from assetcache.config import Settings
from assetcache.hooks import FILTER_STATS_EXPIRY, HookRegistry
from assetcache.logging import get_logger
from assetcache.types import ZONES, GzipMode, StatsSnapshot, Zone, epoch_now

logger = get_logger(__name__)


def is_valid_entry(zone_dir: Path, filename: str, prefix: str) -> bool:
    """Whether filename in zone_dir is a cache file.

    A cache file is a regular file whose name contains the cache prefix.
    Markers, foreign files and directories are not cache files.
    """
    if filename in (".", ".."):
        return False
    if prefix not in filename:
        return False
    return (zone_dir / filename).is_file()


def list_zone_contents(guard: DirectoryGuard) -> dict[Zone, list[str]]:
    """List the file names of every zone. A missing zone lists as empty."""
    contents: dict[Zone, list[str]] = {}
    for zone in ZONES:
        try:
            contents[zone] = sorted(os.listdir(guard.zone_dir(zone)))
        except FileNotFoundError:
            contents[zone] = []
    return contents


@dataclass(frozen=True)
class CountingRules:
    """Which valid cache files count as an entry, per gzip mode.

    A file counts when its name contains any of the markers for the active
    mode. Every valid file adds to the byte total whether it counts or not.
    """

    markers: Mapping[GzipMode, tuple[str, ...]] = field(
        default_factory=lambda: {
            GzipMode.SERVER_DELEGATED: (".js", ".css", ".img", ".txt"),
            GzipMode.SELF_MANAGED: (".none",),
        }
    )

    def counts(self, filename: str, mode: GzipMode) -> bool:
        return any(marker in filename for marker in self.markers.get(mode, ()))


# Counts the file that represents each entry in its own mode: the raw
# payload sidecar for containers, the asset itself for self-managed files.
REPRESENTATIVE_COUNTING_RULES = CountingRules(
    markers={
        GzipMode.SERVER_DELEGATED: (".none",),
        GzipMode.SELF_MANAGED: (".js", ".css", ".img", ".txt"),
    }
)


class StatsMemo(ABC):
    """Time-boxed storage for the last stats snapshot."""

    @abstractmethod
    def get(self, now: float) -> StatsSnapshot | None:
        """Return the memoized snapshot if it has not expired."""
        ...

    @abstractmethod
    def set(self, snapshot: StatsSnapshot, ttl: int, now: float) -> None:
        """Store a snapshot for ttl seconds. ttl <= 0 never expires."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Forget the memoized snapshot."""
        ...


def _expires_at(ttl: int, now: float) -> float | None:
    return now + ttl if ttl > 0 else None


class MemoryStatsMemo(StatsMemo):
    """In-process stats memo."""

    def __init__(self) -> None:
        self._snapshot: StatsSnapshot | None = None
        self._expires_at: float | None = None

    def get(self, now: float) -> StatsSnapshot | None:
        if self._snapshot is None:
            return None
        if self._expires_at is not None and now >= self._expires_at:
            self.clear()
            return None
        return self._snapshot

    def set(self, snapshot: StatsSnapshot, ttl: int, now: float) -> None:
        self._snapshot = snapshot
        self._expires_at = _expires_at(ttl, now)

    def clear(self) -> None:
        self._snapshot = None
        self._expires_at = None


class JsonFileStatsMemo(StatsMemo):
    """Stats memo kept in a JSON file, shared by every process on the host.

    An unreadable or corrupt file is treated as an empty memo.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def get(self, now: float) -> StatsSnapshot | None:
        try:
            data = orjson.loads(self.path.read_bytes())
            snapshot = StatsSnapshot.from_dict(data["snapshot"])
            expires_at = data.get("expires_at")
        except FileNotFoundError:
            return None
        except (
            OSError, orjson.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError
        ) as e:
            logger.debug("Ignoring unreadable stats memo", path=str(self.path), error=str(e))
            return None

        if expires_at is not None and now >= float(expires_at):
            return None
        return snapshot

    def set(self, snapshot: StatsSnapshot, ttl: int, now: float) -> None:
        payload = {"snapshot": snapshot.to_dict(), "expires_at": _expires_at(ttl, now)}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_bytes(orjson.dumps(payload))
        except OSError as e:
            logger.warning("Could not persist stats memo", path=str(self.path), error=str(e))

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class StatsEngine:
    """Scans the cache directories and memoizes the result."""

    def __init__(
        self,
        settings: Settings,
        guard: DirectoryGuard,
        hooks: HookRegistry,
        memo: StatsMemo | None = None,
        rules: CountingRules | None = None,
        clock: Callable[[], float] = epoch_now,
    ) -> None:
        self.settings = settings
        self.guard = guard
        self.hooks = hooks
        self.memo = memo if memo is not None else MemoryStatsMemo()
        self.rules = rules if rules is not None else CountingRules()
        self.clock = clock

    def scan(self) -> StatsSnapshot:
        """Count and size the cache contents now."""
        count = 0
        size = 0
        mode = self.settings.GZIP_MODE
        prefix = self.settings.CACHEFILE_PREFIX

        for zone, names in list_zone_contents(self.guard).items():
            zone_dir = self.guard.zone_dir(zone)
            for name in names:
                if not is_valid_entry(zone_dir, name, prefix):
                    continue
                if self.rules.counts(name, mode):
                    count += 1
                try:
                    size += (zone_dir / name).stat().st_size
                except FileNotFoundError:
                    # Removed between listing and stat
                    continue

        return StatsSnapshot(count=count, total_bytes=size, scanned_at=self.clock())

    def stats(self, ttl: int | None = None) -> StatsSnapshot:
        """Get cache statistics, from the memo when it is fresh.

        Args:
            ttl: Memo lifetime in seconds, defaults to STATS_TTL_SECONDS.
                The cache_stats_expiry filter sees and may change it.

        Returns:
            The snapshot, or StatsSnapshot.unavailable() when the cache
            directories cannot be used.
        """
        cached = self.memo.get(self.clock())
        if cached is not None:
            return cached

        if not self.guard.ensure_available():
            return StatsSnapshot.unavailable()

        snapshot = self.scan()
        if snapshot.count > self.settings.STATS_MIN_COUNT:
            expiry = self.hooks.apply_filters(
                FILTER_STATS_EXPIRY,
                ttl if ttl is not None else self.settings.STATS_TTL_SECONDS,
            )
            self.memo.set(snapshot, int(expiry), self.clock())
            logger.debug("Memoized cache stats", count=snapshot.count, ttl=expiry)

        return snapshot

    def invalidate(self) -> None:
        """Drop the memoized snapshot."""
        self.memo.clear()
