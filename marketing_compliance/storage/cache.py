"""
In-process TTL cache shared by the guideline repository and the pipeline.
"""

from __future__ import annotations

import hashlib
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Tuple


class CacheBackend(Protocol):
    """Minimal get/set/TTL contract; any backend honouring it can be injected."""

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


@dataclass(slots=True)
class CacheStats:
    keys: int
    hits: int
    misses: int


class TTLCache:
    """Thread-safe dictionary cache with per-entry expiry."""

    def __init__(self, default_ttl: int = 600, *, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                self._misses += 1
                return None
            self._hits += 1
            return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        lifetime = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = (self._clock() + lifetime, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            now = self._clock()
            live = sum(1 for expires_at, _ in self._entries.values() if expires_at > now)
            return CacheStats(keys=live, hits=self._hits, misses=self._misses)


def hash_text(text: str) -> str:
    """MD5 digest used for cache keys (not a security boundary)."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def make_analysis_key(text: str, context: Optional[str] = None, options: Optional[Mapping[str, object]] = None) -> str:
    """Cache key from the content hash plus serialized context and options."""
    key = f"analysis:{hash_text(text)}:{hash_text(context or '')}"
    if options:
        serialized = ",".join(f"{name}={options[name]}" for name in sorted(options))
        key += f":{hash_text(serialized)}"
    return key


__all__ = ["CacheBackend", "CacheStats", "TTLCache", "hash_text", "make_analysis_key"]
