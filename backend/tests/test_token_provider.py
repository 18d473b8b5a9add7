"""
Tests for the Google OAuth2 token provider and the caching wrapper.

The Google token endpoint is replaced with httpx.MockTransport; no network.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from urllib.parse import parse_qs

import httpx
import pytest

from app.config import OAuthClientConfig
from app.errors import CredentialError
from app.services.token_provider import (
    GOOGLE_TOKEN_URL,
    AccessToken,
    CachingTokenProvider,
    GoogleTokenProvider,
)

OAUTH = OAuthClientConfig(
    client_id="client-id",
    client_secret="client-secret",
    redirect_uri="https://developers.google.com/oauthplayground",
    refresh_token="refresh-token",
)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _token(value="tok", expires_in_seconds=3600) -> AccessToken:
    return AccessToken(
        token=value,
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in_seconds),
    )


class TestGoogleTokenProvider:
    @pytest.mark.asyncio
    async def test_returns_access_token(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"access_token": "ya29.fresh", "expires_in": 3599})

        provider = GoogleTokenProvider(OAUTH, http_client=_client(handler))
        before = datetime.now(timezone.utc)

        token = await provider.get_access_token()

        assert token.token == "ya29.fresh"
        assert token.cached is False
        assert before + timedelta(seconds=3500) < token.expires_at <= datetime.now(timezone.utc) + timedelta(seconds=3599)

    @pytest.mark.asyncio
    async def test_sends_refresh_token_grant(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["method"] = request.method
            seen["form"] = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
            return httpx.Response(200, json={"access_token": "ya29.fresh", "expires_in": 3600})

        await GoogleTokenProvider(OAUTH, http_client=_client(handler)).get_access_token()

        assert seen["url"] == GOOGLE_TOKEN_URL
        assert seen["method"] == "POST"
        assert seen["form"] == {
            "client_id": "client-id",
            "client_secret": "client-secret",
            "refresh_token": "refresh-token",
            "grant_type": "refresh_token",
        }

    @pytest.mark.asyncio
    async def test_missing_expires_in_defaults_to_one_hour(self):
        def handler(request):
            return httpx.Response(200, json={"access_token": "ya29.fresh"})

        token = await GoogleTokenProvider(OAUTH, http_client=_client(handler)).get_access_token()

        assert token.expires_at > datetime.now(timezone.utc) + timedelta(minutes=59)

    @pytest.mark.asyncio
    async def test_revoked_refresh_token_raises_credential_error(self):
        def handler(request):
            return httpx.Response(
                400,
                json={"error": "invalid_grant", "error_description": "Token has been expired or revoked."},
            )

        with pytest.raises(CredentialError) as exc_info:
            await GoogleTokenProvider(OAUTH, http_client=_client(handler)).get_access_token()

        assert "invalid_grant" in exc_info.value.message
        assert "expired or revoked" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_non_json_error_body_raises_credential_error(self):
        def handler(request):
            return httpx.Response(503, text="upstream unavailable")

        with pytest.raises(CredentialError) as exc_info:
            await GoogleTokenProvider(OAUTH, http_client=_client(handler)).get_access_token()

        assert "503" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_response_without_token_raises_credential_error(self):
        def handler(request):
            return httpx.Response(200, json={"token_type": "Bearer"})

        with pytest.raises(CredentialError, match="No access token"):
            await GoogleTokenProvider(OAUTH, http_client=_client(handler)).get_access_token()

    @pytest.mark.asyncio
    async def test_network_error_raises_credential_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(CredentialError, match="Token request failed") as exc_info:
            await GoogleTokenProvider(OAUTH, http_client=_client(handler)).get_access_token()

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


class TestCachingTokenProvider:
    @pytest.mark.asyncio
    async def test_reuses_unexpired_token(self):
        inner = AsyncMock()
        inner.get_access_token.return_value = _token("first")
        provider = CachingTokenProvider(inner)

        first = await provider.get_access_token()
        second = await provider.get_access_token()

        assert first.token == second.token == "first"
        assert first.cached is False
        assert second.cached is True
        inner.get_access_token.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refreshes_token_inside_margin(self):
        inner = AsyncMock()
        inner.get_access_token.side_effect = [_token("stale", expires_in_seconds=30), _token("fresh")]
        provider = CachingTokenProvider(inner, refresh_margin=timedelta(seconds=60))

        await provider.get_access_token()
        token = await provider.get_access_token()

        assert token.token == "fresh"
        assert token.cached is False
        assert inner.get_access_token.await_count == 2

    @pytest.mark.asyncio
    async def test_invalidate_forces_refresh(self):
        inner = AsyncMock()
        inner.get_access_token.side_effect = [_token("first"), _token("second")]
        provider = CachingTokenProvider(inner)

        await provider.get_access_token()
        provider.invalidate()
        token = await provider.get_access_token()

        assert token.token == "second"

    @pytest.mark.asyncio
    async def test_failure_is_not_cached(self):
        inner = AsyncMock()
        inner.get_access_token.side_effect = [CredentialError("invalid_grant"), _token("recovered")]
        provider = CachingTokenProvider(inner)

        with pytest.raises(CredentialError):
            await provider.get_access_token()
        token = await provider.get_access_token()

        assert token.token == "recovered"

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self):
        calls = 0

        async def slow_refresh():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return _token(f"token-{calls}")

        inner = AsyncMock()
        inner.get_access_token.side_effect = slow_refresh
        provider = CachingTokenProvider(inner)

        tokens = await asyncio.gather(*(provider.get_access_token() for _ in range(5)))

        assert {t.token for t in tokens} == {"token-1"}
        assert calls == 1
