# storycraft/acquisition/cache.py
"""
Content-aware TTL/LRU cache for acquisition results.

Each category has its own time-to-live: successful shorts/video results
live long, fallback/error results live briefly so recovery is retried
soon. Capacity is bounded; the least recently used entry goes first.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Generic, Mapping, Optional, TypeVar

from storycraft.logging_core.logger import get_component_logger, log_event
from storycraft.resilience.clock import Clock, SystemClock


V = TypeVar("V")

DEFAULT_TTLS: Dict[str, float] = {
    "shorts": 15 * 60,
    "video": 60 * 60,
    "metadata": 30 * 60,
    "fallback": 5 * 60,
    "error": 60,
}
DEFAULT_CATEGORY = "metadata"

_logger = get_component_logger("cache")


@dataclass
class CacheEntry(Generic[V]):
    key: str
    value: V
    category: str
    created_at: float
    ttl_seconds: float
    hit_count: int = 0
    last_accessed: float = 0.0

    def expired(self, now: float) -> bool:
        return now - self.created_at >= self.ttl_seconds


def make_key(reference_id: str, kind_hint: str = "auto") -> str:
    return f"youtube:{reference_id}:{kind_hint}"


class ContentCache(Generic[V]):
    """Thread-safe; every public method holds the lock for its whole body."""

    def __init__(
        self,
        max_entries: int = 1000,
        ttls: Optional[Mapping[str, float]] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self.ttls: Dict[str, float] = {**DEFAULT_TTLS, **(ttls or {})}
        self._clock = clock or SystemClock()
        self._entries: "OrderedDict[str, CacheEntry[V]]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def ttl_for(self, category: str) -> float:
        return self.ttls.get(category, self.ttls[DEFAULT_CATEGORY])

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            now = self._clock.monotonic()
            if entry.expired(now):
                del self._entries[key]
                self._misses += 1
                log_event(_logger, logging.DEBUG, "Cache entry expired", event_type="cache_expired", metadata={"key": key})
                return None

            entry.hit_count += 1
            entry.last_accessed = now
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    def set(self, key: str, value: V, category: str) -> None:
        with self._lock:
            now = self._clock.monotonic()
            if key in self._entries:
                del self._entries[key]
            while len(self._entries) >= self.max_entries:
                evicted_key, _ = self._entries.popitem(last=False)
                self._evictions += 1
                log_event(_logger, logging.DEBUG, "Cache evicted LRU entry", event_type="cache_evict", metadata={"key": evicted_key})

            ttl = self.ttl_for(category)
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                category=category,
                created_at=now,
                ttl_seconds=ttl,
                last_accessed=now,
            )
            log_event(
                _logger,
                logging.DEBUG,
                "Cache set",
                event_type="cache_set",
                metadata={"key": key, "category": category, "ttl_seconds": ttl},
            )

    def has(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.expired(self._clock.monotonic()):
                del self._entries[key]
                return False
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = self._misses = self._evictions = 0

    def cleanup(self) -> int:
        """Sweep expired entries. Returns how many were removed."""
        with self._lock:
            now = self._clock.monotonic()
            expired = [key for key, entry in self._entries.items() if entry.expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            log_event(_logger, logging.INFO, "Cache cleanup", event_type="cache_cleanup", metadata={"removed": len(expired)})
        return len(expired)

    def entry(self, key: str) -> Optional[CacheEntry[V]]:
        """Inspect an entry without counting a hit or refreshing recency."""
        with self._lock:
            return self._entries.get(key)

    def entries_by_category(self) -> Dict[str, int]:
        with self._lock:
            counts: Dict[str, int] = {}
            for entry in self._entries.values():
                counts[entry.category] = counts.get(entry.category, 0) + 1
            return counts

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            lookups = self._hits + self._misses
            entries = list(self._entries.values())
            return {
                "total_entries": len(entries),
                "max_entries": self.max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate": (self._hits / lookups * 100) if lookups else 0.0,
                "average_hit_count": (sum(e.hit_count for e in entries) / len(entries)) if entries else 0.0,
            }
