"""In-memory cache with per-entry expiry."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Hashable


class TTLCache:
    """Values keyed by ``(entity, params)`` that expire ``ttl_seconds`` after being stored."""

    def __init__(self, ttl_seconds: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[str, Hashable], tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, entity: str, params: Hashable = ()) -> Any | None:
        key = (entity, params)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, entity: str, params: Hashable, value: Any, ttl: float | None = None) -> None:
        """Store ``value``; ``ttl`` overrides the cache-wide expiry for this entry."""
        lifetime = self.ttl_seconds if ttl is None else ttl
        with self._lock:
            self._entries[(entity, params)] = (self._clock() + lifetime, value)

    def get_or_compute(self, entity: str, params: Hashable, compute: Callable[[], Any]) -> Any:
        value = self.get(entity, params)
        if value is None:
            value = compute()
            self.set(entity, params, value)
        return value

    def invalidate(self, entity: str, params: Hashable = ()) -> None:
        with self._lock:
            self._entries.pop((entity, params), None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for expires_at, _ in self._entries.values() if now < expires_at)
