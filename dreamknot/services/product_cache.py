# dreamknot/services/product_cache.py
import threading
import time
from typing import Any, Callable

from dreamknot.utils.settings import CATALOG_CACHE_TTL_SECONDS


class ProductCache:
    """
    Time-bounded memo for catalog reads.

    Entries expire ttl_seconds after they were set; an expired entry is
    dropped on the next get. invalidate() with no key empties the cache.
    """

    def __init__(
        self,
        ttl_seconds: int = CATALOG_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        if self.ttl_seconds <= 0:
            return
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def invalidate(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)
