"""Rate limiting dependencies for FastAPI routes.

This module wires the rate limit service into the HTTP layer.

- The service is built once by the app factory and stored on ``app.state``;
  routes obtain it through ``get_rate_limit_service``.
- ``enforce_route_rate_limit`` applies the per (client IP, route) request
  limit to any route it decorates.
- Denials surface as ``RateLimitAppError`` (HTTP 429); the policy itself
  only returns booleans.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Request

from riskguard.core.config import settings
from riskguard.core.errors import ErrorDetails, RateLimitAppError
from riskguard.services.rate_limit_service import RateLimitService

logger = logging.getLogger(__name__)

LOOPBACK_IP = "127.0.0.1"


def get_client_ip(request: Request) -> str:
    """Resolve the client IP for rate limiting.

    Order: first ``X-Forwarded-For`` entry, ``X-Real-IP``, socket peer, then
    the loopback address. Proxy headers are ignored when
    ``APP_TRUST_PROXY_HEADERS`` is false.

    Examples:
        >>> # X-Forwarded-For: 203.0.113.7, 10.0.0.2
        >>> # -> "203.0.113.7"
    """
    if settings.app.trust_proxy_headers:
        forwarded_for = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

        real_ip = request.headers.get("x-real-ip", "").strip()
        if real_ip:
            return real_ip

    if request.client and request.client.host:
        return request.client.host
    return LOOPBACK_IP


def get_rate_limit_service(request: Request) -> RateLimitService:
    """Return the process-wide service created by the app factory."""
    return request.app.state.rate_limit_service


RateLimitServiceDep = Annotated[RateLimitService, Depends(get_rate_limit_service)]


def rate_limited_error(
    message: str = "Too many requests. Please try again later.",
    *,
    scope: str = "request",
    retry_after: int | None = None,
) -> RateLimitAppError:
    """Build the 429 error raised by routes when a policy denies the caller."""
    details: ErrorDetails = {"scope": scope}
    if retry_after is not None and settings.app.rate_limit_include_headers:
        details["retry_after"] = retry_after
    return RateLimitAppError(code="rate_limited", message=message, details=details)


async def enforce_route_rate_limit(request: Request, service: RateLimitServiceDep) -> None:
    """FastAPI dependency enforcing the request limit for the current route.

    Raises:
        RateLimitAppError: 429 when the limit is exceeded or the client is
            locked out.
    """
    client_ip = get_client_ip(request)
    route = request.url.path

    if await service.check_rate_limit(client_ip, route):
        return

    raise rate_limited_error(retry_after=service.policy.window_seconds)
