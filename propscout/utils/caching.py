"""Key-value caching used for geocode results, PaTMa responses and recent searches."""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional, Protocol

from cachetools import TTLCache


class KeyValueCache(Protocol):
    def get(self, key: str) -> Any | None: ...
    def set(self, key: str, value: Any) -> None: ...
    def delete(self, key: str) -> None: ...


class TTLMemoryCache:
    """Thread-safe in-process cache; entries expire ``ttl`` seconds after being set."""

    def __init__(self, maxsize: int = 1024, ttl: float = 3600, timer=None) -> None:
        kwargs = {"timer": timer} if timer is not None else {}
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, **kwargs)
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._cache.get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._cache[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def clear_prefix(self, prefix: str) -> None:
        """Drop every entry whose key starts with ``prefix``."""

        with self._lock:
            for key in [k for k in self._cache if str(k).startswith(prefix)]:
                del self._cache[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)


class RecentSearches:
    """Most-recent-first list of search criteria stored under one cache key."""

    KEY = "recent_searches"

    def __init__(self, cache: KeyValueCache, limit: int = 10) -> None:
        self.cache = cache
        self.limit = limit

    def record(self, entry: Dict[str, Any]) -> None:
        items = [item for item in self.list() if item != entry]
        items.insert(0, entry)
        self.cache.set(self.KEY, items[: self.limit])

    def list(self) -> List[Dict[str, Any]]:
        return list(self.cache.get(self.KEY) or [])

    def clear(self) -> None:
        self.cache.delete(self.KEY)


def cache_key(prefix: str, *parts: Optional[Any]) -> str:
    return ":".join([prefix] + ["" if p is None else str(p).strip().lower() for p in parts])


__all__ = ["KeyValueCache", "TTLMemoryCache", "RecentSearches", "cache_key"]
