"""
Delegated OAuth2 credentials for the operator mailbox.

GoogleTokenProvider exchanges the long-lived refresh token for a short-lived
access token on every call.  CachingTokenProvider wraps any provider and
reuses the last token until shortly before it expires.

Google token endpoint
---------------------
POST https://oauth2.googleapis.com/token (form-encoded)
  client_id, client_secret, refresh_token, grant_type=refresh_token

Success: {"access_token": "...", "expires_in": 3599, ...}
Failure: {"error": "invalid_grant", "error_description": "Token has been expired or revoked."}
"""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

import httpx

from app.config import OAuthClientConfig
from app.errors import CredentialError

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

# Google's default lifetime when expires_in is missing from the response.
DEFAULT_EXPIRES_IN = 3600


@dataclass(frozen=True)
class AccessToken:
    token: str
    expires_at: datetime
    cached: bool = False

    def expires_within(self, margin: timedelta, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.expires_at <= now + margin


class TokenProvider(Protocol):
    async def get_access_token(self) -> AccessToken: ...


def _describe_oauth_error(response: httpx.Response) -> str:
    """Build a readable message from a failed token endpoint response."""
    try:
        body = response.json()
    except ValueError:
        return f"Token endpoint returned HTTP {response.status_code}: {response.text[:200]}"

    if isinstance(body, dict) and body.get("error"):
        description = body.get("error_description")
        if description:
            return f"{body['error']}: {description}"
        return str(body["error"])
    return f"Token endpoint returned HTTP {response.status_code}"


class GoogleTokenProvider:
    """
    Mint an access token from the configured refresh token.

    Args:
        oauth: Immutable client credentials, shared by every request.
        http_client: Optional client to reuse (tests inject one backed by
            httpx.MockTransport).  A short-lived client is opened per call
            otherwise.
        token_url: Override for the Google token endpoint.
    """

    def __init__(
        self,
        oauth: OAuthClientConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        token_url: str = GOOGLE_TOKEN_URL,
    ):
        self._oauth = oauth
        self._http_client = http_client
        self._token_url = token_url

    async def get_access_token(self) -> AccessToken:
        data = {
            "client_id": self._oauth.client_id,
            "client_secret": self._oauth.client_secret,
            "refresh_token": self._oauth.refresh_token,
            "grant_type": "refresh_token",
        }

        try:
            if self._http_client is not None:
                response = await self._http_client.post(self._token_url, data=data)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(self._token_url, data=data)
        except httpx.HTTPError as exc:
            raise CredentialError(f"Token request failed: {exc}") from exc

        if response.status_code != 200:
            raise CredentialError(_describe_oauth_error(response))

        try:
            payload = response.json()
        except ValueError as exc:
            raise CredentialError("Token endpoint returned a non-JSON body") from exc

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise CredentialError("No access token in refresh response")

        try:
            expires_in = int(payload.get("expires_in") or DEFAULT_EXPIRES_IN)
        except (TypeError, ValueError):
            expires_in = DEFAULT_EXPIRES_IN
        logger.info("Obtained access token (expires in %ss)", expires_in)
        return AccessToken(
            token=token,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        )


class CachingTokenProvider:
    """
    Reuse an access token until ``refresh_margin`` before it expires.

    Tokens served from the cache are marked ``cached=True`` so the dispatcher
    can invalidate and refresh when the mail provider rejects one.  The lock
    keeps concurrent requests from refreshing the same token twice.
    """

    def __init__(self, inner: TokenProvider, refresh_margin: timedelta = timedelta(seconds=60)):
        self._inner = inner
        self._refresh_margin = refresh_margin
        self._token: Optional[AccessToken] = None
        self._lock = asyncio.Lock()

    async def get_access_token(self) -> AccessToken:
        async with self._lock:
            if self._token is not None and not self._token.expires_within(self._refresh_margin):
                return dataclasses.replace(self._token, cached=True)

            self._token = await self._inner.get_access_token()
            return self._token

    def invalidate(self) -> None:
        self._token = None
