"""Named filter events that let callers intercept values at pipeline stages."""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

logger = logging.getLogger("fieldsafe.filters")

DEFAULT_PRIORITY = 10

F = TypeVar("F", bound=Callable[[Any], Any])


@dataclass(order=True, frozen=True)
class _Subscription:
    priority: int
    sequence: int
    callback: Callable[[Any], Any] = field(compare=False)


class FilterChain:
    """Ordered callbacks per event name.

    ``apply`` threads a value through every callback registered for an event,
    lowest priority first and registration order within a priority. An event
    with no callbacks returns the value unchanged.
    """

    def __init__(self) -> None:
        self._filters: dict[str, list[_Subscription]] = {}
        self._sequence = itertools.count()
        self._lock = threading.RLock()

    def add_filter(self, event: str, callback: F, priority: int = DEFAULT_PRIORITY) -> F:
        if not callable(callback):
            raise TypeError(f"Filter for '{event}' must be callable, got {type(callback).__name__}.")
        with self._lock:
            subscriptions = self._filters.setdefault(event, [])
            subscriptions.append(_Subscription(priority, next(self._sequence), callback))
            subscriptions.sort()
        logger.debug("Registered filter %r on %s (priority %d)", callback, event, priority)
        return callback

    def filter(self, event: str, priority: int = DEFAULT_PRIORITY) -> Callable[[F], F]:
        """Decorator form of ``add_filter``."""

        def decorator(func: F) -> F:
            return self.add_filter(event, func, priority=priority)

        return decorator

    def remove_filter(self, event: str, callback: Callable[[Any], Any]) -> bool:
        with self._lock:
            subscriptions = self._filters.get(event, [])
            for subscription in subscriptions:
                if subscription.callback is callback:
                    subscriptions.remove(subscription)
                    if not subscriptions:
                        del self._filters[event]
                    return True
        return False

    def has_filters(self, event: str) -> bool:
        with self._lock:
            return bool(self._filters.get(event))

    def clear(self, event: str | None = None) -> None:
        with self._lock:
            if event is None:
                self._filters.clear()
            else:
                self._filters.pop(event, None)

    def callbacks(self, event: str) -> list[Callable[[Any], Any]]:
        with self._lock:
            return [subscription.callback for subscription in self._filters.get(event, [])]

    def apply(self, event: str, value: Any) -> Any:
        # Snapshot so callbacks can register filters without touching this pass.
        for callback in self.callbacks(event):
            value = callback(value)
        return value
