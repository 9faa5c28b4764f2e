"""
In-memory TTL cache shared by the orchestrator and the pagination resolver.

Features:
- Per-entry expiry, evaluated lazily on read
- Periodic sweep through cleanup() for keys that are never read again
- Lock-guarded so check-then-evict is atomic across callers
- Injectable clock for tests
"""
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, TypeVar

T = TypeVar('T')


@dataclass
class CacheEntry(Generic[T]):
    """Cache entry with value and absolute expiry."""
    value: T
    expires_at: float


class TTLCache(Generic[T]):
    """
    Key/value store with per-entry TTL. No eviction policy beyond expiry.
    """

    def __init__(
        self,
        name: str = "cache",
        default_ttl: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.default_ttl = default_ttl
        self._clock = clock
        self._cache: Dict[str, CacheEntry[T]] = {}
        self._lock = threading.Lock()
        self._total_hits = 0
        self._total_misses = 0

    def _is_expired(self, entry: CacheEntry[T], now: float) -> bool:
        return now > entry.expires_at

    def get(self, key: str, default: Optional[T] = None) -> Optional[T]:
        """Get value from cache, evicting it if expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._total_misses += 1
                return default

            if self._is_expired(entry, self._clock()):
                del self._cache[key]
                self._total_misses += 1
                return default

            self._total_hits += 1
            return entry.value

    def has(self, key: str) -> bool:
        """True if key holds an unexpired value."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return False
            if self._is_expired(entry, self._clock()):
                del self._cache[key]
                return False
            return True

    def set(self, key: str, value: T, ttl: Optional[float] = None) -> None:
        """Set value in cache, overwriting any previous entry."""
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._cache[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def delete(self, key: str) -> bool:
        """Delete a specific key."""
        with self._lock:
            return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all entries."""
        with self._lock:
            self._cache.clear()

    def cleanup(self) -> int:
        """Remove all expired entries. Returns count removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, v in self._cache.items() if self._is_expired(v, now)]
            for key in expired:
                del self._cache[key]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __bool__(self) -> bool:
        return True

    def stats(self) -> dict:
        """Get cache statistics."""
        with self._lock:
            hits, misses, items = self._total_hits, self._total_misses, len(self._cache)
        lookups = hits + misses
        hit_rate = hits / lookups * 100 if lookups > 0 else 0
        return {
            "name": self.name,
            "items": items,
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hit_rate, 1),
            "default_ttl_seconds": self.default_ttl,
        }
