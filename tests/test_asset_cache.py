"""
Tests for the AssetCache facade and entry handles.
"""

from __future__ import annotations

import gzip
from pathlib import Path
from typing import Callable

import pytest

from assetcache.cache import AssetCache, JsonFileStatsMemo, MemoryStatsMemo
from assetcache.config import Settings
from assetcache.exceptions import ConfigurationError
from assetcache.hooks import FILTER_CACHE_GETNAME, FILTER_CREATE_STATIC_GZIP, HookRegistry
from assetcache.types import GzipMode


class TestCachedAsset:
    """One-entry handle."""

    @pytest.mark.parametrize("mode", list(GzipMode))
    def test_miss_then_hit(self, make_cache: Callable[..., AssetCache], mode: GzipMode) -> None:
        cache = make_cache(GZIP_MODE=mode)
        assert cache.ensure_available()
        entry = cache.entry("abc123", "css")

        assert entry.check() is False
        assert entry.retrieve() is None

        entry.cache("body{color:red}", "text/css")

        assert entry.check() is True
        assert entry.retrieve() == b"body{color:red}"

    def test_self_managed_layout(
        self, make_cache: Callable[..., AssetCache], cache_root: Path
    ) -> None:
        cache = make_cache(GZIP_MODE=GzipMode.SELF_MANAGED)
        assert cache.ensure_available()

        cache.entry("abc123", "css").cache("body{color:red}", "text/css")

        assert (cache_root / "css" / "ao_abc123.css").read_text() == "body{color:red}"

    def test_server_delegated_layout(
        self, make_cache: Callable[..., AssetCache], cache_root: Path
    ) -> None:
        cache = make_cache(GZIP_MODE=GzipMode.SERVER_DELEGATED)
        assert cache.ensure_available()

        cache.entry("xyz", "js").cache("var a=1;", "text/javascript")

        assert (cache_root / "ao_xyz.php").is_file()
        assert (cache_root / "ao_xyz.php.none").read_text() == "var a=1;"

    def test_static_gzip_filter(
        self, make_cache: Callable[..., AssetCache], hooks: HookRegistry, cache_root: Path
    ) -> None:
        hooks.add_filter(FILTER_CREATE_STATIC_GZIP, lambda create: True)
        cache = make_cache(GZIP_MODE=GzipMode.SELF_MANAGED)
        assert cache.ensure_available()

        cache.entry("abc", "js").cache("x=1", "text/javascript")

        assert gzip.decompress((cache_root / "js" / "ao_abc.js.gz").read_bytes()) == b"x=1"

    def test_static_gzip_ignored_when_server_delegated(
        self, make_cache: Callable[..., AssetCache], hooks: HookRegistry, cache_root: Path
    ) -> None:
        hooks.add_filter(FILTER_CREATE_STATIC_GZIP, lambda create: True)
        cache = make_cache(GZIP_MODE=GzipMode.SERVER_DELEGATED)
        assert cache.ensure_available()

        cache.entry("abc", "js").cache("x=1", "text/javascript")

        assert not list(cache_root.glob("*.gz"))

    def test_url_and_getname_filter(
        self, make_cache: Callable[..., AssetCache], hooks: HookRegistry
    ) -> None:
        seen: list[str] = []

        def cdn(url: str) -> str:
            seen.append(url)
            return url.replace("https://example.com", "https://cdn.example.com")

        hooks.add_filter(FILTER_CACHE_GETNAME, cdn)
        cache = make_cache(
            GZIP_MODE=GzipMode.SELF_MANAGED,
            CACHE_URL="https://example.com/wp-content/cache/autoptimize",
        )
        entry = cache.entry("abc", "css")

        assert entry.get_name() == "css/ao_abc.css"
        assert seen == ["https://example.com/wp-content/cache/autoptimize/css/ao_abc.css"]
        assert entry.url == "https://cdn.example.com/wp-content/cache/autoptimize/css/ao_abc.css"

    def test_default_extension_is_php(self, make_cache: Callable[..., AssetCache]) -> None:
        cache = make_cache(GZIP_MODE=GzipMode.SELF_MANAGED)
        assert cache.entry("abc").filename == "ao_abc.php"


class TestAssetCacheWiring:
    def test_entry_store_needs_cache_dir(self, make_cache: Callable[..., AssetCache]) -> None:
        cache = make_cache(CACHE_DIR=None)
        with pytest.raises(ConfigurationError):
            cache.entry("abc", "css").check()

    def test_memo_selection(self, make_settings: Callable[..., Settings], temp_dir: Path) -> None:
        plain = AssetCache(make_settings())
        shared = AssetCache(make_settings(STATS_MEMO_FILE=temp_dir / "stats.json"))

        assert isinstance(plain.stats_engine.memo, MemoryStatsMemo)
        assert isinstance(shared.stats_engine.memo, JsonFileStatsMemo)

    def test_default_host_uses_settings(self, make_settings: Callable[..., Settings]) -> None:
        cache = AssetCache(make_settings(MULTISITE=True, BLOG_ID=4))
        assert cache.host.multisite is True
        assert cache.host.blog_id == 4
        assert cache.host.hooks is cache.hooks
