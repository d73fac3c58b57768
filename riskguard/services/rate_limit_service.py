"""Rate limit and lockout policies.

Every decision re-reads the current state from the key-value store; the
service keeps no counters of its own, so any number of processes sharing a
remote store enforce the same limits.

Policies:
- Request limit per (client IP, route): fixed window counter.
- Failed attempts per (client IP, route): counter that, once it reaches the
  threshold, writes a lockout entry denying every request for that pair
  until it expires.
- Comment limit per user: fixed window counter.
- Analysis limit per user: counted from the activity log (system of record)
  rather than from a key-value counter.

Windows are fixed, not sliding: a client can send up to twice the limit in
a short burst straddling a window boundary. That approximation is accepted.

Degradation on unexpected errors:
- request, comment and failed-attempt checks fail open (allow / not locked)
- the analysis check fails closed (deny), it guards an expensive operation
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from riskguard.adapters.activity.base import AbstractActivityLog
from riskguard.adapters.kv.base import AbstractKeyValueStore
from riskguard.core.config import RateLimitPolicySettings
from riskguard.core.logging import hash_identifier
from riskguard.services.rate_limit_toggle import RateLimitToggle

logger = logging.getLogger(__name__)

LOCKOUT_MARKER = "1"


def request_counter_key(client_ip: str, route: str) -> str:
    return f"ratelimit:{client_ip}:{route}"


def failed_attempts_key(client_ip: str, route: str) -> str:
    return f"failed:{client_ip}:{route}"


def lockout_key(client_ip: str, route: str) -> str:
    return f"lockout:{client_ip}:{route}"


def comment_counter_key(user_id: str) -> str:
    return f"comment-limit:{user_id}"


@dataclass(frozen=True)
class RateLimitPolicy:
    """Windows (seconds) and thresholds of every policy."""

    window_seconds: int = 60
    max_requests: int = 30
    failed_attempts_threshold: int = 5
    failed_attempts_window_seconds: int = 3600
    lockout_seconds: int = 900
    comment_window_seconds: int = 60
    comment_max: int = 5
    analysis_window_seconds: int = 60
    analysis_max: int = 10

    @classmethod
    def from_settings(cls, cfg: RateLimitPolicySettings) -> "RateLimitPolicy":
        return cls(**cfg.model_dump())


class RateLimitService:
    """Evaluates rate limit policies against the shared stores.

    Attributes:
        store: Key-value store holding counters and lockouts.
        toggle: Global on/off switch consulted before every policy.
        activity: Activity log used by the analysis limit.
        policy: Thresholds and windows.
    """

    def __init__(
        self,
        *,
        store: AbstractKeyValueStore,
        activity: AbstractActivityLog,
        toggle: RateLimitToggle | None = None,
        policy: RateLimitPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the service with its collaborators.

        Args:
            store: Key-value store shared by the process (or cluster).
            activity: Activity log for the analysis limit.
            toggle: Global switch; defaults to one backed by ``store``.
            policy: Policy thresholds; defaults to the standard values.
            clock: Time source returning UNIX time in seconds.
        """
        self.store = store
        self.activity = activity
        self.toggle = toggle or RateLimitToggle(store)
        self.policy = policy or RateLimitPolicy()
        self._clock = clock

    async def _increment_counter(self, key: str, *, window_seconds: int) -> int:
        """Increment an existing counter and return its new value.

        The entry can expire between the read and the increment; the
        increment then creates a fresh counter without expiry, so the window
        expiry is written again.
        """
        count = await self.store.incr(key)
        if count == 1:
            await self.store.set(key, 1, expire_seconds=window_seconds)
        return count

    async def _consume_fixed_window(self, key: str, *, limit: int, window_seconds: int) -> bool:
        """Count one hit against a fixed window counter; True if under the limit."""
        current = await self.store.get(key)
        if current is None:
            await self.store.set(key, 1, expire_seconds=window_seconds)
            return True

        if int(current) < limit:
            await self._increment_counter(key, window_seconds=window_seconds)
            return True

        return False

    async def check_rate_limit(self, client_ip: str, route: str) -> bool:
        """Return whether a request from ``client_ip`` to ``route`` may proceed."""
        try:
            if not await self.toggle.is_enabled():
                return True

            if await self.store.get(lockout_key(client_ip, route)) is not None:
                logger.warning(
                    "rate_limit.locked_out",
                    extra={"client_hash": hash_identifier(client_ip), "route": route},
                )
                return False

            allowed = await self._consume_fixed_window(
                request_counter_key(client_ip, route),
                limit=self.policy.max_requests,
                window_seconds=self.policy.window_seconds,
            )
        except Exception:
            logger.exception("rate_limit.check_failed", extra={"policy": "request", "route": route})
            return True

        if not allowed:
            logger.warning(
                "rate_limit.denied",
                extra={
                    "policy": "request",
                    "client_hash": hash_identifier(client_ip),
                    "route": route,
                    "limit": self.policy.max_requests,
                    "window_s": self.policy.window_seconds,
                },
            )
        return allowed

    async def record_failed_attempt(self, client_ip: str, route: str) -> bool:
        """Register a failed attempt; return True when it triggers a lockout."""
        key = failed_attempts_key(client_ip, route)
        try:
            if not await self.toggle.is_enabled():
                return False

            if await self.store.get(key) is None:
                await self.store.set(
                    key,
                    1,
                    expire_seconds=self.policy.failed_attempts_window_seconds,
                )
                return False

            attempts = await self._increment_counter(
                key,
                window_seconds=self.policy.failed_attempts_window_seconds,
            )
            if attempts < self.policy.failed_attempts_threshold:
                return False

            await self.store.set(
                lockout_key(client_ip, route),
                LOCKOUT_MARKER,
                expire_seconds=self.policy.lockout_seconds,
            )
        except Exception:
            logger.exception("rate_limit.check_failed", extra={"policy": "failed_attempts", "route": route})
            return False

        logger.warning(
            "rate_limit.lockout_started",
            extra={
                "client_hash": hash_identifier(client_ip),
                "route": route,
                "attempts": attempts,
                "lockout_s": self.policy.lockout_seconds,
            },
        )
        return True

    async def reset_failed_attempts(self, client_ip: str, route: str) -> None:
        """Forget failed attempts for the pair (e.g. after a successful login)."""
        try:
            await self.store.delete(failed_attempts_key(client_ip, route))
        except Exception:
            logger.exception("rate_limit.reset_failed", extra={"route": route})

    async def check_comment_rate_limit(self, user_id: str) -> bool:
        """Return whether ``user_id`` may post another comment in this window."""
        try:
            if not await self.toggle.is_enabled():
                return True

            allowed = await self._consume_fixed_window(
                comment_counter_key(user_id),
                limit=self.policy.comment_max,
                window_seconds=self.policy.comment_window_seconds,
            )
        except Exception:
            logger.exception("rate_limit.check_failed", extra={"policy": "comment"})
            return True

        if not allowed:
            logger.warning(
                "rate_limit.denied",
                extra={
                    "policy": "comment",
                    "user_hash": hash_identifier(user_id),
                    "limit": self.policy.comment_max,
                    "window_s": self.policy.comment_window_seconds,
                },
            )
        return allowed

    async def check_analysis_rate_limit(self, user_id: str) -> bool:
        """Return whether ``user_id`` may request another analysis.

        Counts activity log entries newer than the window. Unlike the other
        checks, any error denies the request.
        """
        try:
            if not await self.toggle.is_enabled():
                return True

            since = datetime.fromtimestamp(
                self._clock() - self.policy.analysis_window_seconds,
                tz=timezone.utc,
            )
            recent = await self.activity.count_since(user_id, since)
        except Exception:
            logger.exception("rate_limit.check_failed", extra={"policy": "analysis"})
            return False

        allowed = recent < self.policy.analysis_max
        if not allowed:
            logger.warning(
                "rate_limit.denied",
                extra={
                    "policy": "analysis",
                    "user_hash": hash_identifier(user_id),
                    "recent": recent,
                    "limit": self.policy.analysis_max,
                    "window_s": self.policy.analysis_window_seconds,
                },
            )
        return allowed

    async def record_analysis(self, user_id: str) -> None:
        """Append an analysis entry for ``user_id`` to the activity log."""
        await self.activity.record(
            user_id,
            datetime.fromtimestamp(self._clock(), tz=timezone.utc),
        )
