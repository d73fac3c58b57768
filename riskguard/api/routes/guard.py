"""Guard endpoints consulted by the risk-management web application.

Each endpoint runs one policy for a request the web application is about to
accept: an allowed call answers 200 ``{"allowed": true}``, a denied one
answers 429 (rate limit) or 400 (rejected content).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status

from riskguard.core.auth import verify_api_key
from riskguard.core.errors import ValidationAppError
from riskguard.core.input_validation import validate_payload_fields
from riskguard.core.rate_limit import (
    RateLimitServiceDep,
    get_client_ip,
    rate_limited_error,
)
from riskguard.schemas.guard import (
    AnalysisGuardRequest,
    CommentGuardRequest,
    FailedAttemptRequest,
    FailedAttemptResponse,
    GuardDecisionResponse,
    RequestGuardRequest,
)
from riskguard.utils.abuse_heuristics import is_spam, is_suspicious_input

router = APIRouter(
    prefix="/guard",
    tags=["Guard"],
    dependencies=[Depends(verify_api_key)],
)


@router.post("/requests", response_model=GuardDecisionResponse)
async def guard_request(
    body: RequestGuardRequest,
    request: Request,
    service: RateLimitServiceDep,
) -> GuardDecisionResponse:
    """Apply the per-client request limit for a route, then screen its payload.

    The client IP is read from the forwarding headers set by the web
    application (see ``get_client_ip``).

    Raises:
        RateLimitAppError: 429 when the client is over the limit or locked out.
        ValidationAppError: 400 when a payload field is rejected.
    """
    client_ip = get_client_ip(request)
    if not await service.check_rate_limit(client_ip, body.route):
        raise rate_limited_error(retry_after=service.policy.window_seconds)

    validate_payload_fields(body.payload)
    return GuardDecisionResponse()


@router.post("/comments", response_model=GuardDecisionResponse)
async def guard_comment(body: CommentGuardRequest, service: RateLimitServiceDep) -> GuardDecisionResponse:
    """Throttle comment creation per author and reject spam or hostile text."""
    if not await service.check_comment_rate_limit(body.user_id):
        raise rate_limited_error(
            "You're posting comments too quickly. Please wait a minute.",
            scope="comment",
            retry_after=service.policy.comment_window_seconds,
        )

    if is_spam(body.content):
        raise ValidationAppError(
            code="spam_detected",
            message="Comment was flagged as spam",
            details={"field": "content"},
        )

    if is_suspicious_input(body.content):
        raise ValidationAppError(
            code="invalid_input",
            message="Invalid input detected in content",
            details={"field": "content"},
        )

    return GuardDecisionResponse()


@router.post("/analyses", response_model=GuardDecisionResponse)
async def guard_analysis(body: AnalysisGuardRequest, service: RateLimitServiceDep) -> GuardDecisionResponse:
    """Check the analysis limit and record the analysis when it is allowed."""
    if not await service.check_analysis_rate_limit(body.user_id):
        raise rate_limited_error(
            "Analysis limit reached. Please try again later.",
            scope="analysis",
            retry_after=service.policy.analysis_window_seconds,
        )

    await service.record_analysis(body.user_id)
    return GuardDecisionResponse()


@router.post("/failed-attempts", response_model=FailedAttemptResponse)
async def record_failed_attempt(
    body: FailedAttemptRequest,
    request: Request,
    service: RateLimitServiceDep,
) -> FailedAttemptResponse:
    """Register a failed attempt (e.g. a wrong password) for the client and route."""
    locked_out = await service.record_failed_attempt(get_client_ip(request), body.route)
    return FailedAttemptResponse(locked_out=locked_out)


@router.post("/failed-attempts/reset", status_code=status.HTTP_204_NO_CONTENT)
async def reset_failed_attempts(
    body: FailedAttemptRequest,
    request: Request,
    service: RateLimitServiceDep,
) -> Response:
    """Clear the failed-attempt counter, typically after a successful login."""
    await service.reset_failed_attempts(get_client_ip(request), body.route)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
