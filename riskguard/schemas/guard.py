"""Pydantic schemas for the guard endpoints consulted by the web application."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field


class RequestGuardRequest(BaseModel):
    route: str = Field(
        ...,
        min_length=1,
        max_length=512,
        description="Route being protected, typically the request path (e.g. /api/risk).",
    )
    payload: Dict[str, Any] = Field(
        default_factory=dict,
        description="Optional JSON body of the guarded request; string fields are screened.",
    )


class CommentGuardRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=128, description="Authenticated author id.")
    content: str = Field(..., min_length=1, max_length=5000, description="Comment text to screen.")


class AnalysisGuardRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=128, description="Authenticated user id.")


class FailedAttemptRequest(BaseModel):
    route: str = Field(
        ...,
        min_length=1,
        max_length=512,
        description="Route where the attempt failed (e.g. /api/login).",
    )


class GuardDecisionResponse(BaseModel):
    allowed: bool = Field(True, description="Always true; denials are returned as errors.")


class FailedAttemptResponse(BaseModel):
    locked_out: bool = Field(
        ...,
        description="True when this attempt started a lockout for the client and route.",
    )
