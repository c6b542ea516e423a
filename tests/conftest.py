"""
Pytest configuration and fixtures for asset cache tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Generator

import pytest

from assetcache.cache import AssetCache
from assetcache.config import Settings, clear_settings_cache
from assetcache.hooks import HookRegistry
from assetcache.types import GzipMode


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def run_inline(task: Callable[[], None]) -> None:
    """Spawner that runs fire-and-forget work immediately."""
    task()


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def cache_root(temp_dir: Path) -> Path:
    """Cache root path (not created)."""
    return temp_dir / "cache"


@pytest.fixture
def make_settings(cache_root: Path) -> Callable[..., Settings]:
    """Factory for Settings that ignores .env files.

    Defaults to the temp cache root and the "ao_" prefix.
    """

    def factory(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "CACHE_DIR": cache_root,
            "CACHEFILE_PREFIX": "ao_",
            "SITE_URL": "",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return factory


@pytest.fixture
def self_managed_settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings(GZIP_MODE=GzipMode.SELF_MANAGED)


@pytest.fixture
def server_delegated_settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings(GZIP_MODE=GzipMode.SERVER_DELEGATED)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hooks() -> HookRegistry:
    return HookRegistry()


@pytest.fixture
def make_cache(
    make_settings: Callable[..., Settings],
    hooks: HookRegistry,
    clock: FakeClock,
) -> Callable[..., AssetCache]:
    """Factory for an AssetCache with inline fan-out and the fake clock."""

    def factory(**overrides: Any) -> AssetCache:
        return AssetCache(make_settings(**overrides), hooks=hooks, spawn=run_inline, clock=clock)

    return factory


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
