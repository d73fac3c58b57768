"""Unit tests for service-to-service API key authentication."""

from unittest.mock import patch

import pytest
from fastapi import HTTPException

from riskguard.core.auth import parse_api_keys, validate_api_key, verify_api_key
from riskguard.core.errors import AuthenticationAppError


class TestParseApiKeys:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("web-app-key", {"web-app-key"}),
            ("key1,key2,key3", {"key1", "key2", "key3"}),
            ("key1 , key2  ,  key3", {"key1", "key2", "key3"}),
            ("key1,key2,key1", {"key1", "key2"}),
            (None, set()),
            ("", set()),
            ("   ,  ,  ", set()),
        ],
    )
    def test_parse(self, raw, expected) -> None:
        assert parse_api_keys(raw) == expected


class TestValidateApiKey:
    @patch("riskguard.core.auth.settings")
    def test_skipped_when_auth_disabled(self, mock_settings) -> None:
        mock_settings.app.api_key_required = False

        validate_api_key("anything")
        validate_api_key("")

    @pytest.mark.parametrize("configured", [None, "", " , "])
    @patch("riskguard.core.auth.settings")
    def test_no_configured_keys_is_an_error(self, mock_settings, configured) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = configured

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key("some-key")

        assert exc_info.value.code == "api_keys_not_configured"
        assert "APP_API_KEYS" in exc_info.value.details["hint"]

    @patch("riskguard.core.auth.settings")
    def test_accepts_any_configured_key(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = " web-app , cron-job "

        validate_api_key("web-app")
        validate_api_key("cron-job")

    @pytest.mark.parametrize("provided", ["wrong", "", " web-app ", "web-app,cron-job"])
    @patch("riskguard.core.auth.settings")
    def test_rejects_unknown_key(self, mock_settings, provided) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "web-app,cron-job"

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key(provided)

        assert exc_info.value.code == "invalid_api_key"


class TestVerifyApiKey:
    @pytest.mark.asyncio
    @patch("riskguard.core.auth.settings")
    async def test_skipped_when_auth_disabled(self, mock_settings) -> None:
        mock_settings.app.api_key_required = False

        await verify_api_key(x_api_key=None)

    @pytest.mark.asyncio
    @patch("riskguard.core.auth.settings")
    async def test_missing_header_is_403(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "web-app"

        with pytest.raises(HTTPException) as exc_info:
            await verify_api_key(x_api_key=None)

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Missing API key. Provide X-API-Key header."

    @pytest.mark.asyncio
    @patch("riskguard.core.auth.settings")
    async def test_invalid_key_is_403(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "web-app"

        with pytest.raises(HTTPException) as exc_info:
            await verify_api_key(x_api_key="wrong")

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Invalid or missing API key"

    @pytest.mark.asyncio
    @patch("riskguard.core.auth.settings")
    async def test_misconfiguration_is_403(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = None

        with pytest.raises(HTTPException) as exc_info:
            await verify_api_key(x_api_key="web-app")

        assert exc_info.value.status_code == 403
        assert "no valid keys are configured" in exc_info.value.detail

    @pytest.mark.asyncio
    @patch("riskguard.core.auth.settings")
    async def test_valid_key_passes(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "web-app,cron-job"

        await verify_api_key(x_api_key="cron-job")


def test_invalid_key_logged_as_hash(client, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("WARNING", logger="riskguard.core.auth"):
        client.get("/v1/admin/rate-limit", headers={"X-API-Key": "leaked-secret"})

    records = [r for r in caplog.records if r.getMessage() == "auth.invalid_key"]
    assert records
    assert records[0].api_key_hash != "leaked-secret"
    assert len(records[0].api_key_hash) == 16
