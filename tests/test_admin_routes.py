"""Tests for the rate limit administration endpoints."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from riskguard.adapters.kv.in_memory import InMemoryKeyValueStore
from riskguard.services.rate_limit_toggle import TOGGLE_KEY

URL = "/v1/admin/rate-limit"


def test_status_defaults_to_enabled(client: TestClient, api_headers: dict) -> None:
    response = client.get(URL, headers=api_headers)

    assert response.status_code == 200
    assert response.json() == {"enabled": True}


@pytest.mark.parametrize("enabled", [False, True])
def test_update_persists_flag(client: TestClient, api_headers: dict, enabled: bool) -> None:
    response = client.post(URL, json={"enabled": enabled}, headers=api_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["enabled"] is enabled
    assert body["message"] == f"Rate limiting has been {'enabled' if enabled else 'disabled'}"
    assert client.get(URL, headers=api_headers).json() == {"enabled": enabled}


@pytest.mark.parametrize(
    "payload",
    [{"enabled": "true"}, {"enabled": 1}, {"enabled": None}, {}, ["enabled"], "false"],
)
def test_update_rejects_non_boolean(client: TestClient, api_headers: dict, payload) -> None:
    response = client.post(URL, json=payload, headers=api_headers)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "invalid_enabled_value"
    assert error["message"] == "Invalid request. 'enabled' must be a boolean."


@pytest.mark.parametrize("raw_body", [None, b"null", b"{not json", b"\xff\xfe"])
def test_update_rejects_missing_or_malformed_body(client: TestClient, api_headers: dict, raw_body) -> None:
    headers = {**api_headers, "Content-Type": "application/json"}

    response = client.post(URL, content=raw_body, headers=headers)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_enabled_value"


def test_invalid_update_leaves_flag_untouched(
    client: TestClient, api_headers: dict, kv_store: InMemoryKeyValueStore
) -> None:
    client.post(URL, json={"enabled": "false"}, headers=api_headers)

    assert TOGGLE_KEY not in kv_store._entries
    assert client.get(URL, headers=api_headers).json() == {"enabled": True}


def test_failed_write_returns_500(app, client: TestClient, api_headers: dict) -> None:
    app.state.rate_limit_service.toggle.set_enabled = AsyncMock(return_value=False)

    response = client.post(URL, json={"enabled": False}, headers=api_headers)

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "rate_limit_update_failed"


def test_requires_api_key(client: TestClient) -> None:
    assert client.get(URL).status_code == 403
    assert client.post(URL, json={"enabled": False}, headers={"X-API-Key": "wrong"}).status_code == 403


def test_admin_routes_are_rate_limited(client: TestClient, api_headers: dict) -> None:
    statuses = [client.get(URL, headers=api_headers).status_code for _ in range(31)]

    assert statuses[:30] == [200] * 30
    assert statuses[30] == 429
