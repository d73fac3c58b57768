"""Factory selecting the key-value store for the process."""

from __future__ import annotations

import logging

from riskguard.adapters.kv.base import AbstractKeyValueStore
from riskguard.adapters.kv.in_memory import InMemoryKeyValueStore
from riskguard.adapters.kv.upstash import UpstashKeyValueStore
from riskguard.core.config import UpstashSettings, settings

logger = logging.getLogger(__name__)


def create_kv_store(upstash_settings: UpstashSettings | None = None) -> AbstractKeyValueStore:
    """Instantiate the key-value store from configuration.

    The remote store is used when both ``UPSTASH_REDIS_REST_URL`` and
    ``UPSTASH_REDIS_REST_TOKEN`` are set. Otherwise the in-process store is
    returned; a missing remote store is not an error.

    Args:
        upstash_settings: Optional settings; defaults to global settings if omitted.

    Returns:
        AbstractKeyValueStore: Store shared by every policy in the process.
    """
    cfg = upstash_settings or settings.upstash

    if cfg.is_configured:
        logger.info("kv.backend_selected", extra={"backend": "upstash"})
        return UpstashKeyValueStore(
            url=cfg.url,  # type: ignore[arg-type]
            token=cfg.token,  # type: ignore[arg-type]
            timeout_seconds=cfg.timeout_seconds,
        )

    logger.warning(
        "kv.backend_selected",
        extra={
            "backend": "in_memory",
            "hint": "Counters are per-process and lost on restart; set UPSTASH_REDIS_REST_URL/TOKEN to share them",
        },
    )
    return InMemoryKeyValueStore()
