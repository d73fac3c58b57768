"""Global on/off switch for every rate limit policy.

The flag is persisted in the key-value store under ``TOGGLE_KEY`` with no
expiry, so all processes sharing the store see the same value. An absent key
means enabled.

Read errors report the flag as enabled. During a store outage the policies
then run against a store that answers neutrally (no counters, no lockouts),
so requests keep flowing; limits are simply not enforced until it recovers.
"""

from __future__ import annotations

import logging

from riskguard.adapters.kv.base import AbstractKeyValueStore

logger = logging.getLogger(__name__)

TOGGLE_KEY = "ratelimit:enabled"


class RateLimitToggle:
    """Reads and writes the persisted rate limiting flag."""

    def __init__(self, store: AbstractKeyValueStore) -> None:
        self.store = store

    async def is_enabled(self) -> bool:
        """Return whether rate limiting is enabled.

        ``None`` (never set) and ``"1"`` mean enabled, ``"0"`` disabled. Any
        store error also reports enabled so an infrastructure outage never
        silently switches enforcement off.
        """
        try:
            value = await self.store.get(TOGGLE_KEY)
        except Exception as exc:
            logger.error(
                "rate_limit_toggle.read_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return True

        if value is None:
            return True
        return str(value) != "0"

    async def set_enabled(self, enabled: bool) -> bool:
        """Persist the flag without expiry; return False if the write failed."""
        try:
            stored = await self.store.set(TOGGLE_KEY, "1" if enabled else "0")
        except Exception as exc:
            logger.error(
                "rate_limit_toggle.write_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return False

        if stored:
            logger.info("rate_limit_toggle.updated", extra={"enabled": enabled})
        else:
            logger.error("rate_limit_toggle.write_rejected", extra={"enabled": enabled})
        return stored
