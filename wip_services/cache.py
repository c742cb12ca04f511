"""
wip_services.cache -- Result cache port and in-process implementation.

Responsibility:
    Define the CachePort the services use to memoize computed payloads,
    the key scheme for task and client entries, and an in-memory TTL
    cache for local use and tests.

Architecture position:
    Services -- infrastructure seam.  Engines never see the cache.

Invariants enforced:
    - An entry is never served after its TTL has elapsed.
    - Stored values are deep-copied on the way in and out, so callers
      cannot mutate a cached payload in place.
    - All access to the backing dict holds a lock.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol, runtime_checkable

from wip_kernel.domain.clock import Clock, SystemClock


def task_wip_key(prefix: str, task_external_id: str) -> str:
    return f"{prefix}:task-wip:{task_external_id}"


def client_balance_key(prefix: str, client_external_id: str) -> str:
    return f"{prefix}:client-balance:{client_external_id}"


def client_wip_key(prefix: str, client_external_id: str) -> str:
    return f"{prefix}:client-wip:{client_external_id}"


def client_debtors_key(prefix: str, client_external_id: str) -> str:
    return f"{prefix}:client-debtors:{client_external_id}"


@runtime_checkable
class CachePort(Protocol):
    """Key/value cache with per-entry expiry."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...


@dataclass(frozen=True)
class _Entry:
    value: Any
    expires_at: datetime


class InMemoryCache:
    """
    Process-local CachePort.

    Contract:
        ``get`` returns None for missing or expired keys; expired entries
        are evicted on read.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock.now() >= entry.expires_at:
                del self._entries[key]
                return None
            return copy.deepcopy(entry.value)

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds!r}")
        expires_at = self._clock.now() + timedelta(seconds=ttl_seconds)
        with self._lock:
            self._entries[key] = _Entry(copy.deepcopy(value), expires_at)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
