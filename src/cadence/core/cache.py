"""
In-memory result store backing the memoize wrappers.

Manifesto:
    A memoized operation is assumed referentially transparent: for a given
    key its result never changes. The store therefore keeps the *first*
    result it is given for a key and never replaces or expires it.

    - **Write-once:** ``set`` on an existing key is ignored
    - **Failures forgotten:** ``discard`` drops a shared result that failed
    - **Unbounded:** No TTL, no LRU, grows for the life of the wrapper
    - **Observable:** hit/miss counters for tests and logs
    - **Private:** One store per wrapped operation, never shared

Architecture:
    ::

        CacheBackend (Protocol)
        └── MemoCache  — single wrapper instance, unbounded, write-once

        API: get(key, default=MISSING) → value | default
             set(key, value) → bool (False if key already cached)
             exists(key) → bool
             discard(key) → None  (forget a failed in-flight result)
             size() → int

Guardrails:
    ❌ DON'T: Memoize operations whose argument space is unbounded
              in long-lived processes (the store never shrinks)
    ✅ DO: Use memoize_with() and a coarse key when arguments are large

Tags:
    cache, memoization, in-memory, cadence

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Hashable
from typing import Any, Protocol


class _Missing:
    """Sentinel type: distinguishes "not cached" from a cached ``None``."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class CacheBackend(Protocol):
    """Protocol for result stores used by the memoize wrappers."""

    def get(self, key: Hashable, default: Any = MISSING) -> Any:
        """Return the cached value, or ``default`` if the key is absent."""
        ...

    def set(self, key: Hashable, value: Any) -> bool:
        """Store a value; return ``False`` if the key was already cached."""
        ...

    def exists(self, key: Hashable) -> bool:
        """Check whether a key is cached."""
        ...

    def discard(self, key: Hashable) -> None:
        """Drop a key if present (used to forget a failed async result)."""
        ...

    def size(self) -> int:
        """Return current number of cached keys."""
        ...


class MemoCache:
    """Unbounded, write-once in-memory cache.

    Example:
        cache = MemoCache()
        cache.set("k", 42)
        cache.set("k", 99)   # ignored, returns False
        cache.get("k")       # 42
    """

    def __init__(self) -> None:
        self._store: dict[Hashable, Any] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable, default: Any = MISSING) -> Any:
        """Retrieve a value by key, counting the lookup as a hit or miss."""
        try:
            value = self._store[key]
        except KeyError:
            self.misses += 1
            return default
        self.hits += 1
        return value

    def set(self, key: Hashable, value: Any) -> bool:
        """Store a value unless the key is already cached."""
        if key in self._store:
            return False
        self._store[key] = value
        return True

    def exists(self, key: Hashable) -> bool:
        """Check if key is cached (does not touch hit/miss counters)."""
        return key in self._store

    def discard(self, key: Hashable) -> None:
        """Drop a key if present.

        Only used to forget a shared async result that failed; settled
        values are never replaced.
        """
        self._store.pop(key, None)

    def size(self) -> int:
        """Return current number of cached keys."""
        return len(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"MemoCache(size={len(self._store)}, hits={self.hits}, misses={self.misses})"


__all__ = [
    "MISSING",
    "CacheBackend",
    "MemoCache",
]
