"""Activity log stored as documents in an Appwrite collection.

Each requested analysis is one document ``{"userId": ..., "created": ...}``
where ``created`` is an ISO-8601 UTC timestamp. Counting uses the Appwrite
REST documents endpoint with JSON-encoded queries.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from riskguard.adapters.activity.base import AbstractActivityLog
from riskguard.core.errors import StorageAppError

logger = logging.getLogger(__name__)


def _query(method: str, attribute: str | None = None, values: list[Any] | None = None) -> str:
    query: dict[str, Any] = {"method": method}
    if attribute is not None:
        query["attribute"] = attribute
    if values is not None:
        query["values"] = values
    return json.dumps(query, separators=(",", ":"))


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds")


class AppwriteActivityLog(AbstractActivityLog):
    """Appwrite-backed activity log.

    Attributes:
        count_limit: Upper bound requested from Appwrite when listing; callers
            only need to know whether a threshold was crossed.
    """

    def __init__(
        self,
        *,
        endpoint: str,
        project_id: str,
        database_id: str,
        collection_id: str,
        api_key: str,
        count_limit: int = 100,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.count_limit = count_limit
        self._documents_path = f"/databases/{database_id}/collections/{collection_id}/documents"
        self._client = httpx.AsyncClient(
            base_url=endpoint.rstrip("/"),
            headers={
                "X-Appwrite-Project": project_id,
                "X-Appwrite-Key": api_key,
                "Content-Type": "application/json",
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    async def _request(self, method: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, self._documents_path, **kwargs)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(
                "activity_log.request_failed",
                extra={
                    "method": method,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            raise StorageAppError(
                code="activity_log_unavailable",
                message="Activity log could not be reached",
            ) from exc

    async def count_since(self, user_id: str, since: datetime) -> int:
        body = await self._request(
            "GET",
            params={
                "queries[]": [
                    _query("equal", "userId", [user_id]),
                    _query("greaterThan", "created", [_iso(since)]),
                    _query("limit", values=[self.count_limit]),
                ]
            },
        )
        total = body.get("total")
        if not isinstance(total, int):
            raise StorageAppError(
                code="activity_log_invalid_response",
                message="Activity log returned no document total",
            )
        return total

    async def record(self, user_id: str, created: datetime) -> None:
        await self._request(
            "POST",
            json={
                "documentId": "unique()",
                "data": {"userId": user_id, "created": _iso(created)},
            },
        )

    async def aclose(self) -> None:
        await self._client.aclose()
