"""
Third-party page cache purging.

Page caches in front of the site keep serving HTML that references the
purged asset URLs, so they are flushed after a purge. Which page cache is
installed is probed, not configured: HostEnvironment describes the callables
and classes the host exposes, and the integration table pairs a presence
probe with a purge routine. The first integration whose probe matches is
run; order matters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from assetcache.hooks import (
    FILTER_FLUSH_WPENGINE_AGGRESSIVE,
    FILTER_FLUSH_WPENGINE_METHODS,
    HookRegistry,
)
from assetcache.logging import get_logger

logger = get_logger(__name__)

WPENGINE_DEFAULT_METHODS = ["purge_varnish_cache"]
WPENGINE_AGGRESSIVE_METHODS = ["purge_memcached", "clear_maxcdn_cache"]

SUPER_CACHE_CONFIG = "wp-cache-config.php"


@dataclass
class HostEnvironment:
    """What the hosting application exposes to the cache.

    Attributes:
        functions: Callables by name (e.g. "w3tc_pgcache_flush").
        classes: Classes or objects by name (e.g. "WpFastestCache").
        hooks: The host's hook registry, probed for action listeners.
        content_dir: Host content directory.
        multisite: Whether the host serves a network of sites.
        blog_id: Current site id.
        page_cache_path: Root directory of a file-based page cache.
    """

    functions: dict[str, Callable[..., Any]] = field(default_factory=dict)
    classes: dict[str, Any] = field(default_factory=dict)
    hooks: HookRegistry = field(default_factory=HookRegistry)
    content_dir: Path | None = None
    multisite: bool = False
    blog_id: int = 1
    page_cache_path: Path | None = None

    def function_exists(self, name: str) -> bool:
        return callable(self.functions.get(name))

    def class_exists(self, name: str) -> bool:
        return name in self.classes

    def call(self, name: str, *args: Any) -> Any:
        return self.functions[name](*args)


@dataclass(frozen=True)
class PageCacheIntegration:
    """A page cache system: how to detect it and how to flush it."""

    name: str
    probe: Callable[[], bool]
    purge: Callable[[], None]


def _wpengine_methods(host: HostEnvironment) -> list[str]:
    methods = list(WPENGINE_DEFAULT_METHODS)
    if host.hooks.apply_filters(FILTER_FLUSH_WPENGINE_AGGRESSIVE, False):
        methods.extend(WPENGINE_AGGRESSIVE_METHODS)
    return list(host.hooks.apply_filters(FILTER_FLUSH_WPENGINE_METHODS, methods))


def _purge_wpengine(host: HostEnvironment) -> None:
    wpe = host.classes["WpeCommon"]
    for method in _wpengine_methods(host):
        target = getattr(wpe, method, None)
        if callable(target):
            target()


def _purge_wp_cache(host: HostEnvironment) -> None:
    if host.multisite:
        host.call("wp_cache_clear_cache", host.blog_id)
    else:
        host.call("wp_cache_clear_cache")


def _super_cache_present(host: HostEnvironment) -> bool:
    if host.content_dir is None:
        return False
    return (host.content_dir / SUPER_CACHE_CONFIG).exists() and host.function_exists(
        "prune_super_cache"
    )


def _purge_super_cache(host: HostEnvironment) -> None:
    cache_path = host.page_cache_path
    if host.multisite:
        if host.function_exists("get_supercache_dir"):
            host.call("prune_super_cache", host.call("get_supercache_dir", host.blog_id), True)
        if cache_path is not None:
            host.call("prune_super_cache", cache_path / "blogs", True)
    elif cache_path is not None:
        host.call("prune_super_cache", cache_path / "supercache", True)
        host.call("prune_super_cache", cache_path, True)


def default_integrations(host: HostEnvironment) -> list[PageCacheIntegration]:
    """Build the ordered page cache table for a host."""

    def function(name: str) -> PageCacheIntegration:
        return PageCacheIntegration(
            name=name,
            probe=lambda: host.function_exists(name),
            purge=lambda: host.call(name),
        )

    def static(class_name: str, method: str) -> PageCacheIntegration:
        return PageCacheIntegration(
            name=class_name,
            probe=lambda: host.class_exists(class_name),
            purge=lambda: getattr(host.classes[class_name], method)(),
        )

    return [
        PageCacheIntegration(
            name="wp_cache_clear_cache",
            probe=lambda: host.function_exists("wp_cache_clear_cache"),
            purge=lambda: _purge_wp_cache(host),
        ),
        PageCacheIntegration(
            name="cachify",
            probe=lambda: host.hooks.has_action("cachify_flush_cache"),
            purge=lambda: host.hooks.do_action("cachify_flush_cache"),
        ),
        function("w3tc_pgcache_flush"),
        function("wp_fast_cache_bulk_delete_all"),
        PageCacheIntegration(
            name="WpFastestCache",
            probe=lambda: host.class_exists("WpFastestCache"),
            purge=lambda: host.classes["WpFastestCache"]().deleteCache(),
        ),
        static("c_ws_plugin__qcache_purging_routines", "purge_cache_dir"),
        static("zencache", "clear"),
        static("comet_cache", "clear"),
        PageCacheIntegration(
            name="WpeCommon",
            probe=lambda: host.class_exists("WpeCommon"),
            purge=lambda: _purge_wpengine(host),
        ),
        function("sg_cachepress_purge_cache"),
        PageCacheIntegration(
            name="wp_super_cache",
            probe=lambda: _super_cache_present(host),
            purge=lambda: _purge_super_cache(host),
        ),
    ]


def flush_page_cache(integrations: list[PageCacheIntegration]) -> str | None:
    """Flush the first page cache found.

    Returns:
        Name of the integration that was run, or None if nothing matched.
        Exceptions from the purge routine propagate.
    """
    for integration in integrations:
        if integration.probe():
            logger.info("Flushing page cache", integration=integration.name)
            integration.purge()
            return integration.name
    return None
