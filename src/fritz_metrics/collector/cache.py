"""TTL cache for raw call results, one namespace per protocol family."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

# Cache namespaces, also used as the ``cache`` label of the hit/miss counters.
ACTIONS = "UPNP"
PAGES = "LUA"


@dataclass
class CacheEntry:
    """Last raw result stored for one key. ``result`` is None when empty."""

    timestamp: float = 0.0
    result: Any = None


@dataclass
class CacheCounters:
    cached: int = 0
    loaded: int = 0


class ResultCache:
    """Fetch-or-return cache keyed by ``(namespace, key)``.

    An entry older than the caller's TTL is emptied and refetched. A failed
    fetch leaves the entry empty, so the next access fetches again.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, dict[str, CacheEntry]] = {}
        self._counters: dict[str, CacheCounters] = {}

    def entry(self, namespace: str, key: str) -> CacheEntry:
        """Return the entry for *key*, creating an empty one on first access."""
        entries = self._entries.setdefault(namespace, {})
        entry = entries.get(key)
        if entry is None:
            entry = entries[key] = CacheEntry()
        return entry

    def counters(self, namespace: str) -> CacheCounters:
        return self._counters.setdefault(namespace, CacheCounters())

    def namespaces(self) -> list[str]:
        return list(self._counters)

    def fetch_or_return(
        self,
        namespace: str,
        key: str,
        ttl: float,
        fetch: Callable[[], Any],
    ) -> tuple[Any, bool]:
        """Return ``(result, loaded)`` for *key*.

        *loaded* is True when *fetch* was called. Exceptions raised by
        *fetch* propagate and leave the entry empty with its old timestamp.
        """
        now = self._clock()
        entry = self.entry(namespace, key)
        if entry.result is not None and now - entry.timestamp > ttl:
            entry.result = None

        counters = self.counters(namespace)
        if entry.result is not None:
            counters.cached += 1
            return entry.result, False

        result = fetch()
        # replaced wholesale, never merged
        entry.result = result
        entry.timestamp = now
        counters.loaded += 1
        logger.debug("Loaded %s cache entry %s", namespace, key)
        return result, True

    def invalidate(self, namespace: str, key: str) -> None:
        """Empty the entry for *key* so the next access refetches."""
        self.entry(namespace, key).result = None
