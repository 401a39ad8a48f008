from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from flask import current_app


CLASSES = "classes"
CLASSES_WITH_NAMES = "classes_with_names"
BIRTHDAY_STUDENTS = "birthday_students"
STUDENT_PREFIXES = ("students_", "student_")


def students_by_class_key(class_id: str) -> str:
    return f"students_{class_id}"


@dataclass
class _Entry:
    value: Any
    stored_at: float
    ttl: float


class CacheService:
    """Time-expiring key/value cache owned by the Flask app.

    The clock is injected so expiry can be driven in tests; it must return
    seconds as a float. Values are returned as stored, callers must not
    mutate them.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, default_ttl: float = 300) -> None:
        self._clock = clock
        self._default_ttl = default_ttl
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        with self._lock:
            self._entries[key] = _Entry(value, self._clock(), self._default_ttl if ttl is None else ttl)

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.stored_at > entry.ttl:
                del self._entries[key]
                return None
            return entry.value

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def get_or_load(self, key: str, loader: Callable[[], Any], ttl: Optional[float] = None) -> Any:
        value = self.get(key)
        if value is None:
            value = loader()
            self.set(key, value, ttl)
        return value

    def is_stale(self, key: str, max_age: float) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is None or (self._clock() - entry.stored_at) > max_age

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_prefix(self, *prefixes: str) -> int:
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefixes)]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now - e.stored_at > e.ttl]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"dataCache": len(self._entries), "totalSize": len(self._entries)}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def init_cache(app, clock: Callable[[], float] = time.monotonic) -> CacheService:
    cache = CacheService(clock=clock, default_ttl=app.config.get("CACHE_TTL_MEDIUM", 300))
    app.extensions["data_cache"] = cache
    return cache


def get_cache() -> CacheService:
    return current_app.extensions["data_cache"]


def invalidate_student_data() -> None:
    """Forget everything derived from the student roster."""
    cache = get_cache()
    cache.delete(BIRTHDAY_STUDENTS)
    cache.delete(CLASSES)
    cache.invalidate_prefix(*STUDENT_PREFIXES)
