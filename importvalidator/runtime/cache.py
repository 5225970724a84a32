"""Time-bounded caches with optional write-through persistence.

Entries are valid while ``now - timestamp < timeout``. Expired entries are
treated as absent and left in place until overwritten (lazy expiry).
"""

import logging
import threading
from typing import Any, Callable, Dict, Generic, Iterator, Optional, Tuple, TypeVar

from importvalidator.models import CacheEntry, now_millis
from importvalidator.storage import CacheStore

logger = logging.getLogger("importvalidator.runtime.cache")

T = TypeVar("T")

Clock = Callable[[], int]


class TimedCache(Generic[T]):
    """Thread-safe key -> ``CacheEntry`` map.

    With a ``store`` the cache persists under ``namespace``; values pass
    through ``encode`` / ``decode`` so the store only sees JSON data.
    """

    def __init__(
        self,
        timeout_seconds: float,
        clock: Clock = now_millis,
        store: Optional[CacheStore] = None,
        namespace: str = "",
        encode: Callable[[T], Any] = lambda value: value,
        decode: Callable[[Any], T] = lambda data: data,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self._clock = clock
        self._store = store
        self._namespace = namespace
        self._encode = encode
        self._decode = decode
        self._entries: Dict[str, CacheEntry[T]] = {}
        self._lock = threading.Lock()
        if store is not None:
            self._load()

    def _load(self) -> None:
        loaded = 0
        for key, data, timestamp in self._store.items(self._namespace):
            try:
                value = self._decode(data)
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("Ignoring unreadable %s entry %s: %s", self._namespace, key, e)
                continue
            self._entries[key] = CacheEntry(value, timestamp)
            loaded += 1
        logger.debug("Loaded %d persisted %s entries", loaded, self._namespace)

    def get_entry(self, key: str) -> Optional[CacheEntry[T]]:
        """Return the entry for ``key`` if it is still fresh."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or not entry.is_fresh(self._clock(), self.timeout_seconds):
            return None
        return entry

    def get(self, key: str) -> Optional[T]:
        entry = self.get_entry(key)
        return entry.value if entry else None

    def set(self, key: str, value: T) -> CacheEntry[T]:
        entry = CacheEntry(value, self._clock())
        with self._lock:
            self._entries[key] = entry
        if self._store is not None:
            self._store.set(self._namespace, key, self._encode(value), entry.timestamp)
        return entry

    def invalidate(self, key: str) -> None:
        with self._lock:
            removed = self._entries.pop(key, None)
        if removed is not None and self._store is not None:
            self._store.delete(self._namespace, key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        if self._store is not None:
            self._store.clear(self._namespace)

    def fresh_items(self) -> Iterator[Tuple[str, T]]:
        """Iterate over ``(key, value)`` pairs that have not expired."""
        now = self._clock()
        with self._lock:
            snapshot = list(self._entries.items())
        for key, entry in snapshot:
            if entry.is_fresh(now, self.timeout_seconds):
                yield key, entry.value

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
