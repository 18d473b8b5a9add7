"""
Mail dispatch: one validated submission in, one delivery receipt out.

    1. fetch an access token      -> CredentialError / CredentialTimeoutError
    2. compose the message        (pure, see composer.py)
    3. send it                    -> DeliveryError / DeliveryTimeoutError
    4. return the receipt unchanged

There is no retry policy.  The single exception is a cached token that the
mail provider refuses: the cache is dropped and the send repeated once with a
freshly minted token, which is what the uncached path would have used anyway.
"""

import asyncio
import logging
from typing import Optional

from app.config import Settings
from app.errors import CredentialTimeoutError, DeliveryError, DeliveryTimeoutError
from app.models.submission import DeliveryReceipt, NormalizedSubmission, OutboundMessage
from app.services.composer import compose_message
from app.services.mail_transport import GmailTransport, MailTransport
from app.services.token_provider import (
    AccessToken,
    CachingTokenProvider,
    GoogleTokenProvider,
    TokenProvider,
)

logger = logging.getLogger(__name__)


class MailDispatcher:
    def __init__(
        self,
        operator_mailbox: str,
        token_provider: TokenProvider,
        transport: MailTransport,
        timeout_seconds: float = 10.0,
    ):
        self._operator_mailbox = operator_mailbox
        self._token_provider = token_provider
        self._transport = transport
        self._timeout = timeout_seconds

    async def dispatch(self, submission: NormalizedSubmission) -> DeliveryReceipt:
        token = await self._fetch_token()
        message = compose_message(submission, self._operator_mailbox)

        try:
            receipt = await self._send(message, token)
        except DeliveryError as exc:
            if not (exc.auth_rejected and token.cached):
                raise
            logger.warning("Cached access token rejected by mail provider; refreshing")
            self._invalidate_cache()
            receipt = await self._send(message, await self._fetch_token())

        logger.info("Support query relayed as message %s", receipt.message_id)
        return receipt

    async def _fetch_token(self) -> AccessToken:
        try:
            return await asyncio.wait_for(self._token_provider.get_access_token(), self._timeout)
        except asyncio.TimeoutError as exc:
            raise CredentialTimeoutError(self._timeout) from exc

    async def _send(self, message: OutboundMessage, token: AccessToken) -> DeliveryReceipt:
        try:
            return await asyncio.wait_for(self._transport.send(message, token.token), self._timeout)
        except asyncio.TimeoutError as exc:
            raise DeliveryTimeoutError(self._timeout) from exc

    def _invalidate_cache(self) -> None:
        if isinstance(self._token_provider, CachingTokenProvider):
            self._token_provider.invalidate()


def build_dispatcher(settings: Settings) -> Optional[MailDispatcher]:
    """
    Wire the Google collaborators from settings.

    Returns None when the operator mailbox or OAuth credentials are missing;
    the send endpoint reports that as a credential failure per request.
    """
    if not settings.mail_configured:
        logger.warning(
            "Mail credentials not configured (GMAIL_USER / CLIENT_ID / CLIENT_SECRET / "
            "REFRESH_TOKEN) — /send-email will fail until they are set"
        )
        return None

    token_provider: TokenProvider = GoogleTokenProvider(settings.oauth)
    if settings.token_cache_enabled:
        token_provider = CachingTokenProvider(token_provider)

    return MailDispatcher(
        operator_mailbox=settings.operator_mailbox,
        token_provider=token_provider,
        transport=GmailTransport(),
        timeout_seconds=settings.dispatch_timeout_seconds,
    )
