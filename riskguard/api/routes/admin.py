from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from riskguard.core.auth import verify_api_key
from riskguard.core.errors import StorageAppError, ValidationAppError
from riskguard.core.rate_limit import RateLimitServiceDep, enforce_route_rate_limit
from riskguard.schemas.rate_limit import (
    RateLimitStatusResponse,
    RateLimitUpdateRequest,
    RateLimitUpdateResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_api_key), Depends(enforce_route_rate_limit)],
)


@router.get("/rate-limit", response_model=RateLimitStatusResponse)
async def get_rate_limit_status(service: RateLimitServiceDep) -> RateLimitStatusResponse:
    """Return whether rate limiting is currently enforced."""
    return RateLimitStatusResponse(enabled=await service.toggle.is_enabled())


@router.post(
    "/rate-limit",
    response_model=RateLimitUpdateResponse,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {"schema": RateLimitUpdateRequest.model_json_schema()}
            },
        }
    },
)
async def update_rate_limit_status(
    request: Request,
    service: RateLimitServiceDep,
) -> RateLimitUpdateResponse:
    """Enable or disable rate limiting for every process sharing the store.

    The body is read and checked by hand rather than through the pydantic
    model so that non-boolean values (``"true"``, ``1``), a missing or
    ``null`` body and malformed JSON are all rejected with 400 instead of
    being coerced or answered with 422.

    Raises:
        ValidationAppError: 400 when ``enabled`` is missing or not a boolean.
        StorageAppError: 500 when the new value could not be persisted.
    """
    try:
        body = await request.json()
    except ValueError:
        body = None

    enabled = body.get("enabled") if isinstance(body, dict) else None
    if not isinstance(enabled, bool):
        raise ValidationAppError(
            code="invalid_enabled_value",
            message="Invalid request. 'enabled' must be a boolean.",
            details={"field": "enabled"},
        )

    if not await service.toggle.set_enabled(enabled):
        raise StorageAppError(
            code="rate_limit_update_failed",
            message="Failed to update rate limit setting",
        )

    logger.info("admin.rate_limit_toggled", extra={"enabled": enabled})
    return RateLimitUpdateResponse(
        enabled=enabled,
        message=f"Rate limiting has been {'enabled' if enabled else 'disabled'}",
    )
