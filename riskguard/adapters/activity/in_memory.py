"""In-process activity log (per-process, not durable)."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta

from riskguard.adapters.activity.base import AbstractActivityLog


class InMemoryActivityLog(AbstractActivityLog):
    """Keeps recent entry timestamps per user.

    Entries older than ``retention_seconds`` relative to the newest recorded
    entry are pruned on write, for every user, and users left without
    entries are dropped, so memory stays bounded by recent activity.
    """

    def __init__(self, *, retention_seconds: int = 3600) -> None:
        if retention_seconds < 1:
            raise ValueError("retention_seconds must be >= 1")
        self._retention = timedelta(seconds=retention_seconds)
        self._lock = threading.RLock()
        self._entries: dict[str, list[datetime]] = {}

    async def count_since(self, user_id: str, since: datetime) -> int:
        with self._lock:
            return sum(1 for created in self._entries.get(user_id, []) if created > since)

    async def record(self, user_id: str, created: datetime) -> None:
        with self._lock:
            cutoff = created - self._retention
            for known_user in list(self._entries):
                kept = [ts for ts in self._entries[known_user] if ts > cutoff]
                if kept:
                    self._entries[known_user] = kept
                else:
                    del self._entries[known_user]
            self._entries.setdefault(user_id, []).append(created)
