"""Pydantic schemas for the rate limit administration endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RateLimitStatusResponse(BaseModel):
    """Current state of the global rate limiting switch."""

    enabled: bool = Field(..., description="Whether rate limiting is enforced.")


class RateLimitUpdateRequest(BaseModel):
    """Documented shape of the update body (validated manually for a 400 response)."""

    enabled: bool = Field(..., description="New value of the switch; must be a JSON boolean.")


class RateLimitUpdateResponse(RateLimitStatusResponse):
    message: str = Field(..., description="Human-readable confirmation.")
