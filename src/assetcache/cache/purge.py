"""
Full cache purge.

clear_all() removes every cache file from the three zones together with the
access policy marker and the stats memo. Afterwards, without waiting, it
notifies cache_purged listeners, flushes the first detected page cache and
requests the site root once so the next visitor does not pay for
regenerating the assets.
"""

from __future__ import annotations

import random
import threading
from typing import Callable

import httpx

from assetcache.cache.guard import DirectoryGuard
from assetcache.cache.integrations import PageCacheIntegration, flush_page_cache
from assetcache.cache.stats import StatsEngine, is_valid_entry, list_zone_contents
from assetcache.config import Settings
from assetcache.hooks import ACTION_CACHE_PURGED, FILTER_SPEEDUPPER, HookRegistry
from assetcache.logging import get_logger, log_context

logger = get_logger(__name__)

CACHEBUSTER_PARAM = "ao_speedup_cachebuster"
CACHEBUSTER_MAX = 100000

Spawner = Callable[[Callable[[], None]], None]


def spawn_daemon(task: Callable[[], None]) -> None:
    """Run task on a daemon thread without waiting for it."""
    threading.Thread(target=task, name="assetcache-purge", daemon=True).start()


def warmup_url(site_url: str) -> str:
    """Site root with a random cache-busting query parameter."""
    buster = random.randint(1, CACHEBUSTER_MAX)
    return f"{site_url.rstrip('/')}/?{CACHEBUSTER_PARAM}={buster}"


def warm_cache(site_url: str, timeout: float) -> None:
    """Request the site root once, ignoring the response and any error."""
    url = warmup_url(site_url)
    try:
        with httpx.Client(timeout=timeout, follow_redirects=True) as client:
            client.get(url)
    except httpx.HTTPError as e:
        logger.debug("Cache warming request failed", url=url, error=str(e))
        return
    logger.debug("Cache warming request sent", url=url)


class PurgeCoordinator:
    """Deletes all cache entries and fans out invalidation."""

    def __init__(
        self,
        settings: Settings,
        guard: DirectoryGuard,
        stats: StatsEngine,
        hooks: HookRegistry,
        integrations: list[PageCacheIntegration] | None = None,
        spawn: Spawner = spawn_daemon,
    ) -> None:
        """Initialize the coordinator.

        Args:
            settings: Cache settings.
            guard: Directory guard for the same cache root.
            stats: Stats engine whose memo is invalidated on purge.
            hooks: Registry for the speedupper filter and cache_purged action.
            integrations: Ordered page cache table; none when omitted.
            spawn: Runs the post-purge work; defaults to a daemon thread.
        """
        self.settings = settings
        self.guard = guard
        self.stats = stats
        self.hooks = hooks
        self.integrations = integrations or []
        self.spawn = spawn

    def clear_all(self) -> bool:
        """Delete every cache entry.

        Returns:
            False if the cache is unavailable (nothing is touched), True once
            local deletion has been attempted.
        """
        if not self.guard.ensure_available():
            return False

        with log_context(operation="clear_all", cache_root=self.guard.root):
            removed = self._delete_entries()

            policy_path = self.guard.access_policy_path
            if policy_path is not None:
                try:
                    policy_path.unlink()
                except FileNotFoundError:
                    pass
                except OSError as e:
                    logger.warning(
                        "Could not remove access policy", path=str(policy_path), error=str(e)
                    )

            self.stats.invalidate()
            logger.info("Cache cleared", removed=removed)

        try:
            self.spawn(self._after_purge)
        except Exception as e:
            logger.warning("Could not start post-purge tasks", error=str(e))
        return True

    def _delete_entries(self) -> int:
        prefix = self.settings.CACHEFILE_PREFIX
        removed = 0
        for zone, names in list_zone_contents(self.guard).items():
            zone_dir = self.guard.zone_dir(zone)
            for name in names:
                if not is_valid_entry(zone_dir, name, prefix):
                    continue
                try:
                    (zone_dir / name).unlink()
                    removed += 1
                except OSError as e:
                    logger.debug("Could not remove cache file", name=name, error=str(e))
        return removed

    def _after_purge(self) -> None:
        """Post-purge fan-out. Every step is independent and never raises."""
        try:
            self.hooks.do_action(ACTION_CACHE_PURGED)
        except Exception as e:
            logger.warning("cache_purged listener failed", error=str(e))

        try:
            flush_page_cache(self.integrations)
        except Exception as e:
            logger.warning("Page cache flush failed", error=str(e))

        try:
            if self.settings.SITE_URL and self.hooks.apply_filters(FILTER_SPEEDUPPER, True):
                warm_cache(self.settings.SITE_URL, self.settings.WARMUP_TIMEOUT)
        except Exception as e:
            logger.debug("Cache warming failed", error=str(e))
