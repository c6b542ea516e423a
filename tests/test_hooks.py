"""
Tests for the filter and action registry.
"""

from __future__ import annotations

import pytest

from assetcache.hooks import HookRegistry


class TestFilters:
    def test_no_filters_returns_value(self, hooks: HookRegistry) -> None:
        assert hooks.apply_filters("anything", 42) == 42

    def test_filters_chain_in_priority_order(self, hooks: HookRegistry) -> None:
        hooks.add_filter("name", lambda v: v + "-late", priority=20)
        hooks.add_filter("name", lambda v: v + "-first")
        hooks.add_filter("name", lambda v: v + "-second")

        assert hooks.apply_filters("name", "x") == "x-first-second-late"

    def test_extra_arguments_are_passed(self, hooks: HookRegistry) -> None:
        hooks.add_filter("url", lambda url, suffix: url + suffix)
        assert hooks.apply_filters("url", "a", "/b") == "a/b"


class TestActions:
    def test_do_action_calls_listeners(self, hooks: HookRegistry) -> None:
        calls: list[str] = []
        hooks.add_action("done", lambda: calls.append("a"))
        hooks.add_action("done", lambda: calls.append("b"), priority=5)

        hooks.do_action("done")

        assert calls == ["b", "a"]
        assert hooks.has_action("done")
        assert not hooks.has_action("other")

    def test_listener_errors_propagate(self, hooks: HookRegistry) -> None:
        def boom() -> None:
            raise ValueError("bad listener")

        hooks.add_action("done", boom)
        with pytest.raises(ValueError):
            hooks.do_action("done")

    def test_remove_all(self, hooks: HookRegistry) -> None:
        hooks.add_action("x", lambda: None)
        hooks.add_filter("x", lambda v: v)

        hooks.remove_all("x")

        assert not hooks.has_action("x")
        assert not hooks.has_filter("x")
