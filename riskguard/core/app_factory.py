"""Application factory for the FastAPI app.

Centralizes app construction (stores, services, middleware, handlers,
routers) so tests can build isolated apps with their own stores and clock.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI

from riskguard.adapters.activity import AbstractActivityLog, create_activity_log
from riskguard.adapters.kv import AbstractKeyValueStore, create_kv_store
from riskguard.api.routes import admin_router, guard_router, health_router
from riskguard.core.config import settings
from riskguard.core.exception_handlers import setup_exception_handlers
from riskguard.core.logging import configure_logging
from riskguard.core.middleware import request_id_middleware
from riskguard.core.openapi import TAGS_METADATA, apply_openapi_customizations
from riskguard.services.rate_limit_service import RateLimitPolicy, RateLimitService
from riskguard.services.rate_limit_toggle import RateLimitToggle

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    service: RateLimitService = app.state.rate_limit_service
    await service.store.aclose()
    await service.activity.aclose()


def create_app(
    *,
    kv_store: AbstractKeyValueStore | None = None,
    activity_log: AbstractActivityLog | None = None,
    policy: RateLimitPolicy | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    The key-value store and activity log are chosen once here, from settings
    unless given explicitly, and shared by every request of the process.

    Args:
        kv_store: Store for counters, lockouts and the toggle.
        activity_log: Log counted by the analysis limit.
        policy: Policy thresholds; defaults to ``RATE_LIMIT_*`` settings.
        clock: Time source for the rate limit service.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    store = kv_store if kv_store is not None else create_kv_store(settings.upstash)
    if activity_log is None:
        activity_log = create_activity_log(settings.appwrite)
    service = RateLimitService(
        store=store,
        activity=activity_log,
        toggle=RateLimitToggle(store),
        policy=policy or RateLimitPolicy.from_settings(settings.rate_limit),
        clock=clock,
    )

    app = FastAPI(
        title="riskguard",
        description=(
            "Rate limiting, lockout and abuse screening for the risk-management "
            "web application. Requires X-API-Key on every /v1 route."
        ),
        version="0.1.0",
        openapi_tags=TAGS_METADATA,
        debug=settings.app.debug,
        lifespan=_lifespan,
    )
    app.state.rate_limit_service = service

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(admin_router, prefix="/v1")
    app.include_router(guard_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    logger.info(
        "app.created",
        extra={"kv_store": type(store).__name__, "activity_log": type(service.activity).__name__},
    )
    return app
