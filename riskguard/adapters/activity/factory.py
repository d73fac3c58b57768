"""Factory selecting the activity log for the process."""

from __future__ import annotations

import logging

from riskguard.adapters.activity.appwrite import AppwriteActivityLog
from riskguard.adapters.activity.base import AbstractActivityLog
from riskguard.adapters.activity.in_memory import InMemoryActivityLog
from riskguard.core.config import AppwriteSettings, settings

logger = logging.getLogger(__name__)


def create_activity_log(appwrite_settings: AppwriteSettings | None = None) -> AbstractActivityLog:
    """Return the Appwrite log when fully configured, else the in-process log."""
    cfg = appwrite_settings or settings.appwrite

    if cfg.is_configured:
        logger.info("activity_log.backend_selected", extra={"backend": "appwrite"})
        return AppwriteActivityLog(
            endpoint=cfg.endpoint,  # type: ignore[arg-type]
            project_id=cfg.project_id,  # type: ignore[arg-type]
            database_id=cfg.database_id,  # type: ignore[arg-type]
            collection_id=cfg.analysis_collection_id,  # type: ignore[arg-type]
            api_key=cfg.api_key,  # type: ignore[arg-type]
            count_limit=settings.rate_limit.analysis_max + 1,
            timeout_seconds=cfg.timeout_seconds,
        )

    logger.warning("activity_log.backend_selected", extra={"backend": "in_memory"})
    return InMemoryActivityLog(retention_seconds=max(3600, settings.rate_limit.analysis_window_seconds))
