"""Screening of JSON payload fields before they reach the document store."""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping

from riskguard.core.errors import ValidationAppError
from riskguard.utils.abuse_heuristics import is_suspicious_input

logger = logging.getLogger(__name__)

# Field-name fragments that mark free-text fields needing real content
TEXT_FIELD_MARKERS = ("content", "title", "description")

MIN_MEANINGFUL_CHARS = 3

_NON_MEANINGFUL = re.compile(r"[\s.,/#!$%^&*;:{}=\-_`~()]")


def meaningful_char_count(value: str) -> int:
    """Count characters left after dropping whitespace and common punctuation."""
    return len(_NON_MEANINGFUL.sub("", value.strip()))


def validate_payload_fields(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Validate every non-blank top-level string field of a request payload.

    Rules, applied in order:
    - no field may look like an injection attempt or degenerate text
    - no field may be a single character
    - fields whose name contains content/title/description need at least
      ``MIN_MEANINGFUL_CHARS`` characters that are not whitespace/punctuation

    Non-string and blank values are left untouched.

    Args:
        payload: Decoded JSON object.

    Returns:
        The payload as a plain dict.

    Raises:
        ValidationAppError: On the first field that breaks a rule.
    """
    for key, value in payload.items():
        if not isinstance(value, str) or not value.strip():
            continue

        if is_suspicious_input(value):
            logger.warning("input_validation.rejected", extra={"field": key, "reason": "suspicious"})
            raise ValidationAppError(
                code="invalid_input",
                message=f"Invalid input detected in {key}",
                details={"field": key},
            )

        if len(value.strip()) <= 1:
            raise ValidationAppError(
                code="single_character_field",
                message=f"Field {key} cannot be a single character",
                details={"field": key},
            )

        lowered = key.lower()
        if any(marker in lowered for marker in TEXT_FIELD_MARKERS):
            if meaningful_char_count(value) < MIN_MEANINGFUL_CHARS:
                raise ValidationAppError(
                    code="insufficient_content",
                    message=f"{key} must contain at least {MIN_MEANINGFUL_CHARS} meaningful characters",
                    details={"field": key},
                )

    return dict(payload)
