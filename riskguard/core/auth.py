"""Service-to-service API key authentication.

The web application's server-side handlers call riskguard with a shared key
in the ``X-API-Key`` header. Keys are validated against a comma-separated
list from ``APP_API_KEYS``; ``APP_API_KEY_REQUIRED=false`` disables the check
for local development.
"""

from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import Header, HTTPException, status

from riskguard.core.config import settings
from riskguard.core.errors import AuthenticationAppError
from riskguard.core.logging import hash_identifier

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> parse_api_keys("key1, key2 , key3 ")
        {'key1', 'key2', 'key3'}
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()
    return {key.strip() for key in keys_string.split(",") if key.strip()}


def validate_api_key(provided_key: str) -> None:
    """Check ``provided_key`` against the configured keys.

    Raises:
        AuthenticationAppError: If no keys are configured while auth is
            required, or if the key does not match any configured key.
    """
    if not settings.app.api_key_required:
        return

    valid_keys = parse_api_keys(settings.app.api_keys)
    if not valid_keys:
        logger.error("auth.misconfigured", extra={"reason": "api_keys_not_configured"})
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    # Constant-time comparison against every key
    matched = False
    for key in valid_keys:
        if hmac.compare_digest(provided_key.encode(), key.encode()):
            matched = True

    if not matched:
        logger.warning(
            "auth.invalid_key",
            extra={"api_key_hash": hash_identifier(provided_key) if provided_key else None},
        )
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
        )


async def verify_api_key(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency guarding every ``/v1`` route.

    Raises:
        HTTPException: 403 Forbidden if the key is missing or invalid.
    """
    if not settings.app.api_key_required:
        return

    if not x_api_key:
        logger.warning("auth.missing_key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Missing API key. Provide X-API-Key header.",
        )

    try:
        validate_api_key(x_api_key)
    except AuthenticationAppError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=exc.message,
        ) from exc

    logger.debug("auth.success", extra={"api_key_hash": hash_identifier(x_api_key)})
