"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any riskguard import so the global
settings object sees them: API key auth on with known keys, and no remote
stores, so every app built in tests runs on in-process stores.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
for _name in (
    "UPSTASH_REDIS_REST_URL",
    "UPSTASH_REDIS_REST_TOKEN",
    "APPWRITE_ENDPOINT",
    "APPWRITE_API_KEY",
):
    os.environ.pop(_name, None)

import pytest
from fastapi.testclient import TestClient

from riskguard.adapters.activity.in_memory import InMemoryActivityLog
from riskguard.adapters.kv.in_memory import InMemoryKeyValueStore
from riskguard.core.app_factory import create_app
from riskguard.services.rate_limit_service import RateLimitService


class FakeClock:
    """Deterministic clock used to test expiration logic."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.current = start

    def time(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv_store(clock: FakeClock) -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(clock=clock.time)


@pytest.fixture
def activity_log() -> InMemoryActivityLog:
    return InMemoryActivityLog()


@pytest.fixture
def service(
    kv_store: InMemoryKeyValueStore,
    activity_log: InMemoryActivityLog,
    clock: FakeClock,
) -> RateLimitService:
    return RateLimitService(store=kv_store, activity=activity_log, clock=clock.time)


@pytest.fixture
def app(kv_store: InMemoryKeyValueStore, activity_log: InMemoryActivityLog, clock: FakeClock):
    return create_app(kv_store=kv_store, activity_log=activity_log, clock=clock.time)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def api_headers() -> dict[str, str]:
    """Valid API key headers for authenticated requests."""
    return {"X-API-Key": "test-api-key-123"}
