"""Remote key-value store backed by the Upstash Redis REST API.

Each operation is a single GET request of the form
``<url>/<command>/<key>[/<args>...]`` authenticated with a bearer token; the
service answers ``{"result": ...}`` on success and ``{"error": ...}`` on
failure. Counter increments rely on Redis ``INCR`` atomicity, which holds
across every process sharing the same database.

Transport errors, non-2xx statuses and error payloads are logged and mapped
to the neutral values of the store contract; nothing is raised to callers.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from riskguard.adapters.kv.base import AbstractKeyValueStore, KVValue

logger = logging.getLogger(__name__)

_MISSING = object()


def _segment(value: KVValue) -> str:
    """Percent-encode one path segment (keys routinely contain ':' and '/')."""
    return quote(str(value), safe="")


class UpstashKeyValueStore(AbstractKeyValueStore):
    """Client for the Upstash Redis REST API.

    Uses a shared ``httpx.AsyncClient`` so connections are pooled across
    requests; call ``aclose()`` on shutdown.
    """

    def __init__(
        self,
        url: str,
        token: str,
        *,
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the REST client.

        Args:
            url: REST endpoint of the database.
            token: Bearer token with read/write access.
            timeout_seconds: Timeout applied to every request.
            transport: Optional httpx transport (used by tests).
        """
        if not url or not token:
            raise ValueError("url and token must be non-empty strings")

        self._client = httpx.AsyncClient(
            base_url=url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout_seconds,
            transport=transport,
        )

    async def _command(self, command: str, *args: KVValue) -> Any:
        """Run one REST command and return its ``result`` or ``_MISSING`` on failure."""
        path = "/" + "/".join([command, *(_segment(arg) for arg in args)])

        try:
            response = await self._client.get(path)
        except httpx.HTTPError as exc:
            logger.warning(
                "kv.request_failed",
                extra={"command": command, "error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return _MISSING

        if not response.is_success:
            logger.warning(
                "kv.request_failed",
                extra={"command": command, "status_code": response.status_code},
            )
            return _MISSING

        try:
            body = response.json()
        except ValueError:
            logger.warning("kv.invalid_response", extra={"command": command})
            return _MISSING

        if not isinstance(body, dict) or "error" in body:
            logger.warning(
                "kv.command_error",
                extra={"command": command, "error_msg": body.get("error") if isinstance(body, dict) else None},
            )
            return _MISSING

        return body.get("result")

    async def get(self, key: str) -> KVValue | None:
        result = await self._command("get", key)
        if result is _MISSING or result is None:
            return None
        return result

    async def set(
        self,
        key: str,
        value: KVValue,
        *,
        expire_seconds: int | None = None,
    ) -> bool:
        if expire_seconds is None:
            result = await self._command("set", key, value)
        else:
            result = await self._command("set", key, value, "EX", int(expire_seconds))
        return result == "OK"

    async def incr(self, key: str) -> int:
        result = await self._command("incr", key)
        if result is _MISSING:
            return 0
        try:
            return int(result)
        except (TypeError, ValueError):
            logger.warning("kv.invalid_response", extra={"command": "incr"})
            return 0

    async def delete(self, key: str) -> int:
        result = await self._command("del", key)
        if result is _MISSING:
            return 0
        try:
            return int(result)
        except (TypeError, ValueError):
            return 0

    async def aclose(self) -> None:
        await self._client.aclose()
