"""Key-value storage for shared request state.

Rate-limit counters and finished reports live behind the small
:class:`KeyValueStore` protocol so that routers never touch a module-level
dict directly and tests can swap in a fresh store.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any, Protocol

# Expired entries are swept once every this many writes
_SWEEP_EVERY = 256


class KeyValueStore(Protocol):
    """Minimal storage used by the API services.

    ``put`` accepts an optional time-to-live; an expired key reads as missing.
    """

    def get(self, key: str) -> Any | None: ...

    def put(self, key: str, value: Any, ttl_s: float | None = None) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryStore:
    """Thread-safe dict-backed :class:`KeyValueStore` with per-key expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._data: dict[str, tuple[Any, float | None]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._writes = 0

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= self._clock():
                del self._data[key]
                return None
            return value

    def put(self, key: str, value: Any, ttl_s: float | None = None) -> None:
        with self._lock:
            now = self._clock()
            self._data[key] = (value, None if ttl_s is None else now + ttl_s)
            self._writes += 1
            if self._writes % _SWEEP_EVERY == 0:
                self._sweep(now)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._data.clear()

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, exp) in self._data.items() if exp is not None and exp <= now]
        for k in expired:
            del self._data[k]

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
