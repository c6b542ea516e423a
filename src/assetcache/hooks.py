"""
Filter and action registry.

Extension points are injected into the cache components through a
HookRegistry instead of living in module globals:
- Filters transform a value: apply_filters(name, value, *args) -> value
- Actions notify listeners: do_action(name, *args)

Callbacks run in ascending priority, then in registration order.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable

# Filter names
FILTER_CACHE_GETNAME = "cache_getname"
FILTER_CREATE_STATIC_GZIP = "cache_create_static_gzip"
FILTER_STATS_EXPIRY = "cache_stats_expiry"
FILTER_SPEEDUPPER = "speedupper"
FILTER_FLUSH_WPENGINE_AGGRESSIVE = "flush_wpengine_aggressive"
FILTER_FLUSH_WPENGINE_METHODS = "flush_wpengine_methods"

# Action names
ACTION_CACHE_PURGED = "cache_purged"

DEFAULT_PRIORITY = 10


@dataclass(frozen=True)
class _Hook:
    priority: int
    order: int
    callback: Callable[..., Any]


class HookRegistry:
    """Registry of filter and action callbacks."""

    def __init__(self) -> None:
        self._filters: dict[str, list[_Hook]] = defaultdict(list)
        self._actions: dict[str, list[_Hook]] = defaultdict(list)
        self._order = 0

    def _add(
        self,
        table: dict[str, list[_Hook]],
        name: str,
        callback: Callable[..., Any],
        priority: int,
    ) -> None:
        self._order += 1
        hooks = table[name]
        hooks.append(_Hook(priority=priority, order=self._order, callback=callback))
        hooks.sort(key=lambda h: (h.priority, h.order))

    def add_filter(
        self,
        name: str,
        callback: Callable[..., Any],
        priority: int = DEFAULT_PRIORITY,
    ) -> None:
        """Register a filter. The callback receives the current value first."""
        self._add(self._filters, name, callback, priority)

    def add_action(
        self,
        name: str,
        callback: Callable[..., Any],
        priority: int = DEFAULT_PRIORITY,
    ) -> None:
        """Register an action listener."""
        self._add(self._actions, name, callback, priority)

    def apply_filters(self, name: str, value: Any, *args: Any) -> Any:
        """Pass value through every filter registered under name."""
        for hook in list(self._filters.get(name, ())):
            value = hook.callback(value, *args)
        return value

    def do_action(self, name: str, *args: Any) -> None:
        """Call every listener registered under name.

        Exceptions raised by a listener propagate to the caller.
        """
        for hook in list(self._actions.get(name, ())):
            hook.callback(*args)

    def has_filter(self, name: str) -> bool:
        return bool(self._filters.get(name))

    def has_action(self, name: str) -> bool:
        return bool(self._actions.get(name))

    def remove_all(self, name: str) -> None:
        """Drop every filter and action registered under name."""
        self._filters.pop(name, None)
        self._actions.pop(name, None)
