"""
In-memory, time-expiring key/value store consumed by ``AutoBatcherCache``.
"""

from __future__ import annotations

import time
import typing as t
from dataclasses import dataclass

import structlog

log = structlog.get_logger(__name__)


@t.runtime_checkable
class CacheProtocol(t.Protocol):
    """Contract the batching engine relies on; ``None`` from ``get`` means absent."""

    def get(self, key: t.Any) -> t.Any | None: ...

    def set(self, key: t.Any, value: t.Any, expiry_ms: int | None = None) -> None: ...


@dataclass(frozen=True)
class CacheEntry:
    """
    Cached value and its expiry deadline.

    Parameters
    ----------
    value : typing.Any
        Stored value.
    expires_at : float | None
        ``time.monotonic()`` deadline, or ``None`` for no expiry.
    """

    value: t.Any
    expires_at: float | None = None

    def is_expired(self, *, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class CacheBucket:
    """
    Key/value bucket with optional per-entry expiry.

    Parameters
    ----------
    expiry_ms : int | None, optional
        Default lifetime of entries set without an explicit expiry.
        ``None`` keeps them until replaced or deleted.
    clock : typing.Callable[[], float], optional
        Monotonic clock in seconds.
    """

    def __init__(
        self,
        expiry_ms: int | None = None,
        *,
        clock: t.Callable[[], float] = time.monotonic,
    ) -> None:
        if expiry_ms is not None and expiry_ms <= 0:
            raise ValueError(f"expiry_ms must be positive, got {expiry_ms}")
        self.expiry_ms = expiry_ms
        self._clock = clock
        self._entries: dict[t.Any, CacheEntry] = {}

    def get(self, key: t.Any) -> t.Any | None:
        """Return the value for ``key``, or ``None`` when absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(now=self._clock()):
            del self._entries[key]
            log.debug(event="Cache entry expired", key=key)
            return None
        return entry.value

    def set(self, key: t.Any, value: t.Any, expiry_ms: int | None = None) -> None:
        """
        Store ``value`` under ``key``, restarting its expiry.

        Parameters
        ----------
        key : typing.Any
            Hashable key.
        value : typing.Any
            Value to store.
        expiry_ms : int | None, optional
            Lifetime of this entry; falls back to the bucket default.
        """
        lifetime_ms = expiry_ms or self.expiry_ms
        expires_at = self._clock() + lifetime_ms / 1000.0 if lifetime_ms else None
        self._entries[key] = CacheEntry(value=value, expires_at=expires_at)

    def delete(self, key: t.Any) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def evict_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now=now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __contains__(self, key: t.Any) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        self.evict_expired()
        return len(self._entries)


class Cache:
    """Caller-owned container of named ``CacheBucket`` instances."""

    def __init__(self) -> None:
        self._buckets: dict[str, CacheBucket] = {}

    def add_bucket(self, name: str, expiry_ms: int | None = None) -> CacheBucket:
        """Create (or replace) the bucket called ``name``."""
        bucket = CacheBucket(expiry_ms=expiry_ms)
        self._buckets[name] = bucket
        return bucket

    def get_bucket(self, name: str) -> CacheBucket:
        """Return the bucket called ``name``, creating it on first use."""
        bucket = self._buckets.get(name)
        if bucket is None:
            bucket = self.add_bucket(name)
        return bucket

    def __contains__(self, name: str) -> bool:
        return name in self._buckets
