"""In-process key-value store with lazy per-key expiry.

Notes:
- Per-process only: running multiple workers gives each worker its own
  counters, multiplying the effective limits. Configure the remote store
  for multi-process deployments.
- Not durable: everything is lost on restart.
- Thread-safe: uses a lock around shared state.
- Expiry is evaluated on access; there is no background reaper.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from riskguard.adapters.kv.base import AbstractKeyValueStore, KVValue

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: KVValue
    expires_at: float | None


class InMemoryKeyValueStore(AbstractKeyValueStore):
    """Dict-backed store used when no remote store is configured.

    Each instance owns its own map, so tests can create isolated stores and
    drive expiry through an injected clock.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize an empty store.

        Args:
            clock: Time source function returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}

    def _live_entry(self, key: str) -> _Entry | None:
        """Return the entry for key, dropping it first if it has expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> KVValue | None:
        with self._lock:
            entry = self._live_entry(key)
            return None if entry is None else entry.value

    async def set(
        self,
        key: str,
        value: KVValue,
        *,
        expire_seconds: int | None = None,
    ) -> bool:
        if expire_seconds is not None and expire_seconds < 1:
            raise ValueError("expire_seconds must be >= 1")

        expires_at = None if expire_seconds is None else self._clock() + expire_seconds
        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=expires_at)
        return True

    async def incr(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                # Same as Redis INCR on a missing key: no expiry is attached.
                self._entries[key] = _Entry(value=1, expires_at=None)
                return 1

            try:
                current = int(entry.value)
            except (TypeError, ValueError):
                logger.warning("kv.incr_non_integer", extra={"key_prefix": key.split(":", 1)[0]})
                return 0

            entry.value = current + 1
            return entry.value

    async def delete(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return 0
            del self._entries[key]
            return 1
