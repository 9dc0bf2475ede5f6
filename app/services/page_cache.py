"""Short-lived in-process caches: guest RSVP page data and short-URL resolution.
Per-process only; admin writes call invalidate_wedding() so a stale page never outlives a change here."""
import threading
import time
from typing import Any

from app.config import get_settings

settings = get_settings()


class TTLCache:
    def __init__(self, ttl_seconds: float):
        self.ttl_seconds = ttl_seconds
        self._data: dict[Any, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Any) -> Any | None:
        with self._lock:
            hit = self._data.get(key)
            if hit is None:
                return None
            expires_at, value = hit
            if expires_at <= time.monotonic():
                del self._data[key]
                return None
            return value

    def set(self, key: Any, value: Any) -> None:
        with self._lock:
            self._data[key] = (time.monotonic() + self.ttl_seconds, value)

    def delete(self, key: Any) -> None:
        with self._lock:
            self._data.pop(key, None)

    def delete_where(self, predicate) -> None:
        """Drop every entry for which predicate(key, value) is true."""
        with self._lock:
            for key in [k for k, (_, v) in self._data.items() if predicate(k, v)]:
                del self._data[key]

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


rsvp_page_cache = TTLCache(settings.rsvp_cache_ttl_minutes * 60)
short_url_cache = TTLCache(settings.short_url_cache_ttl_hours * 3600)


def invalidate_wedding(wedding_id: int) -> None:
    """Drop cached guest-page data and short-URL lookups for one wedding."""
    rsvp_page_cache.delete(wedding_id)
    # short-URL entries map (initials, code) -> (wedding_id, magic_token)
    short_url_cache.delete_where(lambda key, value: value[0] == wedding_id)
