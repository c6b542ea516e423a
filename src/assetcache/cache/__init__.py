"""
Disk cache for optimized assets.

This package provides:
- PathPolicy (paths.py): file naming per gzip mode
- DirectoryGuard (guard.py): directory bootstrap and protection
- EntryStore (store.py): single entry read/write
- StatsEngine (stats.py): memoized usage statistics
- PurgeCoordinator (purge.py): full purge and page cache fan-out
- AssetCache: wires the above together for one cache root
"""

from __future__ import annotations

from typing import Callable

from assetcache.cache.guard import DirectoryGuard
from assetcache.cache.integrations import HostEnvironment, default_integrations
from assetcache.cache.paths import PathPolicy
from assetcache.cache.purge import PurgeCoordinator, Spawner, spawn_daemon
from assetcache.cache.stats import (
    CountingRules,
    JsonFileStatsMemo,
    MemoryStatsMemo,
    StatsEngine,
    StatsMemo,
)
from assetcache.cache.store import EntryStore
from assetcache.config import Settings
from assetcache.exceptions import ConfigurationError
from assetcache.hooks import FILTER_CACHE_GETNAME, FILTER_CREATE_STATIC_GZIP, HookRegistry
from assetcache.types import GzipMode, StatsSnapshot, epoch_now


class CachedAsset:
    """Handle on one cache entry, identified by content hash and extension."""

    def __init__(self, cache: AssetCache, content_hash: str, extension: str) -> None:
        self._cache = cache
        self.content_hash = content_hash
        self.extension = extension
        self.filename = cache.paths.resolve_filename(content_hash, extension, cache.mode)

    def check(self) -> bool:
        """Whether the entry is cached."""
        return self._cache.store.exists(self.filename)

    def retrieve(self) -> bytes | None:
        """Cached payload, or None on a miss."""
        return self._cache.store.retrieve(self.filename, self._cache.mode)

    def cache(self, data: bytes | str, mime: str) -> None:
        """Store the payload.

        Raises:
            CacheWriteError: If the entry could not be written.
        """
        create_gzip = False
        if self._cache.mode is GzipMode.SELF_MANAGED:
            create_gzip = bool(
                self._cache.hooks.apply_filters(FILTER_CREATE_STATIC_GZIP, False)
            )
        self._cache.store.write(self.filename, data, mime, self._cache.mode, create_gzip)

    @property
    def url(self) -> str:
        """Public URL of the entry after the cache_getname filter."""
        base = self._cache.settings.CACHE_URL
        if base and not base.endswith("/"):
            base += "/"
        return self._cache.hooks.apply_filters(FILTER_CACHE_GETNAME, base + self.filename)

    def get_name(self) -> str:
        """File name relative to the cache root.

        Listeners on cache_getname see the full URL of every name handed out.
        """
        _ = self.url
        return self.filename


class AssetCache:
    """Asset cache bound to one configuration."""

    def __init__(
        self,
        settings: Settings,
        hooks: HookRegistry | None = None,
        host: HostEnvironment | None = None,
        memo: StatsMemo | None = None,
        rules: CountingRules | None = None,
        spawn: Spawner = spawn_daemon,
        clock: Callable[[], float] = epoch_now,
    ) -> None:
        self.settings = settings
        self.hooks = hooks if hooks is not None else HookRegistry()
        self.host = host if host is not None else HostEnvironment(
            hooks=self.hooks,
            content_dir=settings.CONTENT_DIR,
            multisite=settings.MULTISITE,
            blog_id=settings.BLOG_ID,
        )

        if memo is None:
            if settings.STATS_MEMO_FILE is not None:
                memo = JsonFileStatsMemo(settings.STATS_MEMO_FILE)
            else:
                memo = MemoryStatsMemo()

        self.paths = PathPolicy(settings.CACHEFILE_PREFIX)
        self.guard = DirectoryGuard(settings)
        self.stats_engine = StatsEngine(
            settings, self.guard, self.hooks, memo=memo, rules=rules, clock=clock
        )
        self.purger = PurgeCoordinator(
            settings,
            self.guard,
            self.stats_engine,
            self.hooks,
            integrations=default_integrations(self.host),
            spawn=spawn,
        )
        self._store: EntryStore | None = None

    @property
    def mode(self) -> GzipMode:
        return self.settings.GZIP_MODE

    @property
    def store(self) -> EntryStore:
        if self._store is None:
            if not self.settings.cache_configured:
                raise ConfigurationError("No cache directory configured (CACHE_DIR)")
            self._store = EntryStore(self.settings)
        return self._store

    def entry(self, content_hash: str, extension: str = "php") -> CachedAsset:
        return CachedAsset(self, content_hash, extension)

    def ensure_available(self) -> bool:
        return self.guard.ensure_available()

    def scan(self) -> StatsSnapshot:
        return self.stats_engine.scan()

    def stats(self, ttl: int | None = None) -> StatsSnapshot:
        return self.stats_engine.stats(ttl)

    def clear_all(self) -> bool:
        return self.purger.clear_all()


__all__ = [
    "AssetCache",
    "CachedAsset",
    "CountingRules",
    "DirectoryGuard",
    "EntryStore",
    "HostEnvironment",
    "JsonFileStatsMemo",
    "MemoryStatsMemo",
    "PathPolicy",
    "PurgeCoordinator",
    "StatsEngine",
]
