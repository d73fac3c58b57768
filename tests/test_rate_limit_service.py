"""Unit tests for the rate limit and lockout policies."""

from unittest.mock import AsyncMock

import pytest

from riskguard.adapters.activity.in_memory import InMemoryActivityLog
from riskguard.adapters.kv.in_memory import InMemoryKeyValueStore
from riskguard.core.config import RateLimitPolicySettings
from riskguard.core.errors import StorageAppError
from riskguard.services.rate_limit_service import (
    RateLimitPolicy,
    RateLimitService,
    failed_attempts_key,
    lockout_key,
    request_counter_key,
)

IP = "203.0.113.7"
ROUTE = "/api/login"


async def _fail(service: RateLimitService, times: int) -> list[bool]:
    return [await service.record_failed_attempt(IP, ROUTE) for _ in range(times)]


class TestPolicy:
    def test_defaults(self) -> None:
        policy = RateLimitPolicy()

        assert (policy.window_seconds, policy.max_requests) == (60, 30)
        assert (policy.failed_attempts_threshold, policy.lockout_seconds) == (5, 900)
        assert policy.failed_attempts_window_seconds == 3600
        assert (policy.comment_window_seconds, policy.comment_max) == (60, 5)
        assert (policy.analysis_window_seconds, policy.analysis_max) == (60, 10)

    def test_from_settings(self) -> None:
        policy = RateLimitPolicy.from_settings(RateLimitPolicySettings(max_requests=3, lockout_seconds=10))

        assert policy.max_requests == 3
        assert policy.lockout_seconds == 10
        assert policy.window_seconds == 60


class TestCheckRateLimit:
    @pytest.mark.asyncio
    async def test_allows_thirty_then_denies(self, service: RateLimitService) -> None:
        results = [await service.check_rate_limit(IP, ROUTE) for _ in range(31)]

        assert results[:30] == [True] * 30
        assert results[30] is False
        assert await service.check_rate_limit(IP, ROUTE) is False

    @pytest.mark.asyncio
    async def test_first_call_sets_window_expiry(self, service: RateLimitService, kv_store, clock) -> None:
        await service.check_rate_limit(IP, ROUTE)
        assert await kv_store.get(request_counter_key(IP, ROUTE)) == 1

        clock.advance(60)
        assert await kv_store.get(request_counter_key(IP, ROUTE)) is None

    @pytest.mark.asyncio
    async def test_new_window_resets_counter(self, service: RateLimitService, clock) -> None:
        for _ in range(30):
            await service.check_rate_limit(IP, ROUTE)
        assert await service.check_rate_limit(IP, ROUTE) is False

        clock.advance(60)
        assert await service.check_rate_limit(IP, ROUTE) is True

    @pytest.mark.asyncio
    async def test_isolated_by_client_and_route(self, service: RateLimitService) -> None:
        for _ in range(30):
            await service.check_rate_limit(IP, ROUTE)

        assert await service.check_rate_limit(IP, ROUTE) is False
        assert await service.check_rate_limit("198.51.100.1", ROUTE) is True
        assert await service.check_rate_limit(IP, "/api/risk") is True

    @pytest.mark.asyncio
    async def test_lockout_overrides_counter(self, service: RateLimitService, kv_store) -> None:
        await kv_store.set(lockout_key(IP, ROUTE), "1", expire_seconds=900)

        assert await service.check_rate_limit(IP, ROUTE) is False

    @pytest.mark.asyncio
    async def test_store_error_allows(self, activity_log: InMemoryActivityLog) -> None:
        store = AsyncMock()
        store.get.side_effect = [None, RuntimeError("store down")]
        service = RateLimitService(store=store, activity=activity_log)

        assert await service.check_rate_limit(IP, ROUTE) is True


class TestFailedAttempts:
    @pytest.mark.asyncio
    async def test_fifth_failure_locks_out(self, service: RateLimitService) -> None:
        assert await _fail(service, 5) == [False, False, False, False, True]

    @pytest.mark.asyncio
    async def test_lockout_denies_for_fifteen_minutes(self, service: RateLimitService, clock) -> None:
        await _fail(service, 5)

        assert await service.check_rate_limit(IP, ROUTE) is False
        clock.advance(899)
        assert await service.check_rate_limit(IP, ROUTE) is False

        clock.advance(1)
        assert await service.check_rate_limit(IP, ROUTE) is True

    @pytest.mark.asyncio
    async def test_lockout_scoped_to_route(self, service: RateLimitService) -> None:
        await _fail(service, 5)

        assert await service.check_rate_limit(IP, "/api/risk") is True

    @pytest.mark.asyncio
    async def test_failure_counter_expires_after_an_hour(self, service: RateLimitService, kv_store, clock) -> None:
        await _fail(service, 4)
        assert await kv_store.get(failed_attempts_key(IP, ROUTE)) == 4

        clock.advance(3600)
        assert await _fail(service, 4) == [False] * 4

    @pytest.mark.asyncio
    async def test_reset_clears_counter(self, service: RateLimitService, kv_store) -> None:
        await _fail(service, 4)

        await service.reset_failed_attempts(IP, ROUTE)

        assert await kv_store.get(failed_attempts_key(IP, ROUTE)) is None
        assert await _fail(service, 4) == [False] * 4
        assert await service.check_rate_limit(IP, ROUTE) is True

    @pytest.mark.asyncio
    async def test_reset_is_idempotent(self, service: RateLimitService) -> None:
        await service.reset_failed_attempts(IP, ROUTE)
        await service.reset_failed_attempts(IP, ROUTE)

    @pytest.mark.asyncio
    async def test_reset_swallows_store_errors(self, activity_log: InMemoryActivityLog) -> None:
        store = AsyncMock()
        store.delete.side_effect = RuntimeError("store down")
        service = RateLimitService(store=store, activity=activity_log)

        await service.reset_failed_attempts(IP, ROUTE)

    @pytest.mark.asyncio
    async def test_failed_increment_does_not_lock_out(self, activity_log: InMemoryActivityLog) -> None:
        store = AsyncMock()
        store.get.side_effect = [None, 4]
        store.incr.return_value = 0
        service = RateLimitService(store=store, activity=activity_log)

        assert await service.record_failed_attempt(IP, ROUTE) is False
        store.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_error_reports_not_locked(self, activity_log: InMemoryActivityLog) -> None:
        store = AsyncMock()
        store.get.side_effect = [None, RuntimeError("store down")]
        service = RateLimitService(store=store, activity=activity_log)

        assert await service.record_failed_attempt(IP, ROUTE) is False


class TestCommentRateLimit:
    @pytest.mark.asyncio
    async def test_allows_five_per_minute(self, service: RateLimitService, clock) -> None:
        results = [await service.check_comment_rate_limit("user-1") for _ in range(6)]

        assert results == [True] * 5 + [False]
        assert await service.check_comment_rate_limit("user-2") is True

        clock.advance(60)
        assert await service.check_comment_rate_limit("user-1") is True

    @pytest.mark.asyncio
    async def test_store_error_allows(self, activity_log: InMemoryActivityLog) -> None:
        store = AsyncMock()
        store.get.side_effect = [None, RuntimeError("store down")]
        service = RateLimitService(store=store, activity=activity_log)

        assert await service.check_comment_rate_limit("user-1") is True


class TestAnalysisRateLimit:
    @pytest.mark.asyncio
    async def test_allows_below_threshold(self, service: RateLimitService, clock) -> None:
        for _ in range(9):
            await service.record_analysis("user-1")

        assert await service.check_analysis_rate_limit("user-1") is True

        await service.record_analysis("user-1")
        assert await service.check_analysis_rate_limit("user-1") is False
        assert await service.check_analysis_rate_limit("user-2") is True

    @pytest.mark.asyncio
    async def test_window_slides_with_clock(self, service: RateLimitService, clock) -> None:
        for _ in range(10):
            await service.record_analysis("user-1")
        assert await service.check_analysis_rate_limit("user-1") is False

        clock.advance(60)
        assert await service.check_analysis_rate_limit("user-1") is True

    @pytest.mark.asyncio
    async def test_activity_log_error_denies(self, kv_store: InMemoryKeyValueStore) -> None:
        activity = AsyncMock()
        activity.count_since.side_effect = StorageAppError(code="activity_log_unavailable", message="down")
        service = RateLimitService(store=kv_store, activity=activity)

        assert await service.check_analysis_rate_limit("user-1") is False

    @pytest.mark.asyncio
    async def test_disabled_toggle_skips_activity_log(self, kv_store: InMemoryKeyValueStore) -> None:
        activity = AsyncMock()
        activity.count_since.side_effect = StorageAppError(code="activity_log_unavailable", message="down")
        service = RateLimitService(store=kv_store, activity=activity)
        await service.toggle.set_enabled(False)

        assert await service.check_analysis_rate_limit("user-1") is True
        activity.count_since.assert_not_called()


class TestGlobalToggle:
    @pytest.mark.asyncio
    async def test_disabled_toggle_allows_everything(self, service: RateLimitService) -> None:
        for _ in range(30):
            await service.check_rate_limit(IP, ROUTE)
        for _ in range(5):
            await service.check_comment_rate_limit("user-1")
        await _fail(service, 5)

        await service.toggle.set_enabled(False)

        assert await service.check_rate_limit(IP, ROUTE) is True
        assert await service.check_comment_rate_limit("user-1") is True
        assert await service.record_failed_attempt(IP, ROUTE) is False

    @pytest.mark.asyncio
    async def test_reenabling_uses_persisted_counters(self, service: RateLimitService, clock) -> None:
        for _ in range(5):
            await service.check_comment_rate_limit("user-1")
        await service.toggle.set_enabled(False)
        await service.toggle.set_enabled(True)

        assert await service.check_comment_rate_limit("user-1") is False

        clock.advance(60)
        assert await service.check_comment_rate_limit("user-1") is True


class _ExpiringBeforeIncrStore(InMemoryKeyValueStore):
    """Advances the clock just before each increment, like a slow round-trip."""

    def __init__(self, clock, delay: float) -> None:
        super().__init__(clock=clock.time)
        self._fake_clock = clock
        self._delay = delay

    async def incr(self, key: str) -> int:
        self._fake_clock.advance(self._delay)
        return await super().incr(key)


class TestWindowBoundary:
    @pytest.mark.asyncio
    async def test_counter_recreated_by_incr_gets_window_expiry(self, clock, activity_log) -> None:
        store = _ExpiringBeforeIncrStore(clock, delay=0.001)
        service = RateLimitService(store=store, activity=activity_log, clock=clock.time)
        key = request_counter_key(IP, ROUTE)

        await service.check_rate_limit(IP, ROUTE)
        clock.advance(60 - 0.0005)
        assert await service.check_rate_limit(IP, ROUTE) is True

        assert store._entries[key].expires_at is not None
        clock.advance(60)
        assert await store.get(key) is None

    @pytest.mark.asyncio
    async def test_client_not_denied_forever_after_boundary_race(self, clock, activity_log) -> None:
        store = _ExpiringBeforeIncrStore(clock, delay=0.001)
        service = RateLimitService(store=store, activity=activity_log, clock=clock.time)

        await service.check_rate_limit(IP, ROUTE)
        clock.advance(60 - 0.0005)
        for _ in range(31):
            await service.check_rate_limit(IP, ROUTE)

        clock.advance(3600)
        assert await service.check_rate_limit(IP, ROUTE) is True

    @pytest.mark.asyncio
    async def test_failure_counter_recreated_by_incr_expires(self, clock, activity_log) -> None:
        store = _ExpiringBeforeIncrStore(clock, delay=0.001)
        service = RateLimitService(store=store, activity=activity_log, clock=clock.time)
        key = failed_attempts_key(IP, ROUTE)

        await service.record_failed_attempt(IP, ROUTE)
        clock.advance(3600 - 0.0005)
        assert await service.record_failed_attempt(IP, ROUTE) is False

        assert store._entries[key].expires_at is not None
        clock.advance(3600)
        assert await store.get(key) is None
