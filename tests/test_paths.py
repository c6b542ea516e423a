"""
Tests for cache file naming.
"""

from __future__ import annotations

import pytest

from assetcache.cache.paths import PathPolicy
from assetcache.types import GzipMode, Zone


@pytest.fixture
def policy() -> PathPolicy:
    return PathPolicy("ao_")


class TestServerDelegatedNames:
    """Server-delegated entries are always containers at the root."""

    @pytest.mark.parametrize("extension", ["js", "css", "txt", "img"])
    def test_container_name_ignores_extension(self, policy: PathPolicy, extension: str) -> None:
        assert (
            policy.resolve_filename("xyz", extension, GzipMode.SERVER_DELEGATED)
            == "ao_xyz.php"
        )


class TestSelfManagedNames:
    """Self-managed entries keep their extension; js/css get their own zone."""

    def test_css_goes_to_css_zone(self, policy: PathPolicy) -> None:
        assert (
            policy.resolve_filename("abc123", "css", GzipMode.SELF_MANAGED)
            == "css/ao_abc123.css"
        )

    def test_js_goes_to_js_zone(self, policy: PathPolicy) -> None:
        assert policy.resolve_filename("abc", "js", GzipMode.SELF_MANAGED) == "js/ao_abc.js"

    def test_other_extension_stays_at_root(self, policy: PathPolicy) -> None:
        assert policy.resolve_filename("abc", "txt", GzipMode.SELF_MANAGED) == "ao_abc.txt"

    def test_distinct_inputs_give_distinct_names(self, policy: PathPolicy) -> None:
        pairs = [(h, e) for h in ("a", "b", "abc") for e in ("js", "css", "txt", "img")]
        names = {policy.resolve_filename(h, e, GzipMode.SELF_MANAGED) for h, e in pairs}
        assert len(names) == len(pairs)

    def test_resolution_is_deterministic(self, policy: PathPolicy) -> None:
        first = policy.resolve_filename("abc", "css", GzipMode.SELF_MANAGED)
        second = PathPolicy("ao_").resolve_filename("abc", "css", GzipMode.SELF_MANAGED)
        assert first == second


class TestZoneOf:
    def test_zone_of_resolved_names(self, policy: PathPolicy) -> None:
        assert policy.zone_of("css/ao_a.css") is Zone.CSS
        assert policy.zone_of("js/ao_a.js") is Zone.JS
        assert policy.zone_of("ao_a.php") is Zone.ROOT
