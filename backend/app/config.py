"""
Process-wide configuration.

Values are read once from the environment (and a local ``.env`` file when
present) and frozen.  Nothing here raises on missing mail credentials: the
info and health endpoints stay up and ``/send-email`` reports the problem
per request instead.

Environment variables
---------------------
GMAIL_USER                Operator mailbox; both sender and recipient.
CLIENT_ID                 OAuth2 client id.
CLIENT_SECRET             OAuth2 client secret.
REDIRECT_URI              OAuth2 redirect URI registered with the client.
REFRESH_TOKEN             Long-lived refresh token for GMAIL_USER.
PORT                      Listening port (default: 3000).
APP_ENV                   "development" exposes dispatch error detail in
                          responses; any other value hides it (default:
                          "production").
CORS_ORIGINS              Comma-separated allowed origins (default: any).
REQUEST_LOGGING           Log one line per request (default: true).
TOKEN_CACHE_ENABLED       Reuse access tokens until shortly before expiry
                          (default: false).
DISPATCH_TIMEOUT_SECONDS  Bound on each collaborator call (default: 10).
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

DEFAULT_PORT = 3000
DEFAULT_REDIRECT_URI = "https://developers.google.com/oauthplayground"
DEFAULT_DISPATCH_TIMEOUT_SECONDS = 10.0

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class OAuthClientConfig:
    """Long-lived OAuth2 client credentials used to mint access tokens."""

    client_id: str
    client_secret: str
    redirect_uri: str
    refresh_token: str

    def __repr__(self) -> str:
        # Keep secrets out of logs and tracebacks.
        return f"OAuthClientConfig(client_id={self.client_id!r}, redirect_uri={self.redirect_uri!r})"


@dataclass(frozen=True)
class Settings:
    operator_mailbox: Optional[str]
    oauth: Optional[OAuthClientConfig]
    port: int = DEFAULT_PORT
    environment: str = "production"
    cors_origins: Tuple[str, ...] = ()
    request_logging: bool = True
    token_cache_enabled: bool = False
    dispatch_timeout_seconds: float = DEFAULT_DISPATCH_TIMEOUT_SECONDS

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def mail_configured(self) -> bool:
        return bool(self.operator_mailbox) and self.oauth is not None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from ``environ`` (defaults to ``os.environ``).

        The OAuth block is only populated when client id, client secret and
        refresh token are all present; a partial set counts as unconfigured.
        """
        env = os.environ if environ is None else environ

        client_id = _get(env, "CLIENT_ID")
        client_secret = _get(env, "CLIENT_SECRET")
        refresh_token = _get(env, "REFRESH_TOKEN")
        oauth = None
        if client_id and client_secret and refresh_token:
            oauth = OAuthClientConfig(
                client_id=client_id,
                client_secret=client_secret,
                redirect_uri=_get(env, "REDIRECT_URI") or DEFAULT_REDIRECT_URI,
                refresh_token=refresh_token,
            )

        return cls(
            operator_mailbox=_get(env, "GMAIL_USER") or None,
            oauth=oauth,
            port=int(_get(env, "PORT") or DEFAULT_PORT),
            environment=(_get(env, "APP_ENV") or "production").lower(),
            cors_origins=_split_origins(_get(env, "CORS_ORIGINS")),
            request_logging=_get_bool(env, "REQUEST_LOGGING", True),
            token_cache_enabled=_get_bool(env, "TOKEN_CACHE_ENABLED", False),
            dispatch_timeout_seconds=float(
                _get(env, "DISPATCH_TIMEOUT_SECONDS") or DEFAULT_DISPATCH_TIMEOUT_SECONDS
            ),
        )


def _get(env: Mapping[str, str], key: str) -> str:
    return (env.get(key) or "").strip()


def _get_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = _get(env, key)
    if not raw:
        return default
    return raw.lower() in _TRUTHY


def _split_origins(raw: str) -> Tuple[str, ...]:
    """Split a comma-separated origin list, dropping blanks and duplicates."""
    seen: set = set()
    origins = []
    for origin in raw.split(","):
        origin = origin.strip()
        if origin and origin not in seen:
            seen.add(origin)
            origins.append(origin)
    return tuple(origins)


settings = Settings.from_env()
