from __future__ import annotations

import threading
import time
from typing import Any, Callable


class TtlCache:
    """In-process key/value cache that keeps expired values around.

    ``get`` returns ``(value, is_stale)``. An expired entry is still returned,
    flagged stale, so callers can fall back to the last good value; it is
    evicted only once it is older than ``max_stale_sec`` past expiry.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        max_stale_sec: float | None = None,
    ) -> None:
        self._clock = clock
        self.max_stale_sec = max_stale_sec
        self._rows: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: Any, ttl: float) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be > 0")
        with self._lock:
            self._rows[key] = (value, self._clock() + ttl)

    def get(self, key: str) -> tuple[Any, bool]:
        now = self._clock()
        with self._lock:
            row = self._rows.get(key)
            if row is None:
                return None, True
            value, expires_at = row
            if now < expires_at:
                return value, False
            if self.max_stale_sec is not None and now - expires_at > self.max_stale_sec:
                self._rows.pop(key, None)
                return None, True
            return value, True

    def delete(self, key: str) -> None:
        with self._lock:
            self._rows.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._rows.clear()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._rows)
