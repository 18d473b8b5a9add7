"""
Gmail REST transport.

Sends a composed OutboundMessage as the operator mailbox using a delegated
access token:

  POST https://gmail.googleapis.com/gmail/v1/users/me/messages/send
  Authorization: Bearer <access token>
  {"raw": <base64url RFC 5322 message>}

The response's ``id`` is returned as the delivery receipt.
"""

import base64
import logging
from email.message import EmailMessage
from typing import Optional, Protocol

import httpx

from app.errors import DeliveryError
from app.models.submission import DeliveryReceipt, OutboundMessage

logger = logging.getLogger(__name__)

GMAIL_SEND_URL = "https://gmail.googleapis.com/gmail/v1/users/me/messages/send"


class MailTransport(Protocol):
    async def send(self, message: OutboundMessage, access_token: str) -> DeliveryReceipt: ...


def build_mime_message(message: OutboundMessage) -> EmailMessage:
    """Render a multipart/alternative message (plain text first, then HTML)."""
    mime = EmailMessage()
    mime["From"] = message.sender
    mime["To"] = message.to
    mime["Reply-To"] = message.reply_to
    mime["Subject"] = message.subject
    mime.set_content(message.text_body)
    mime.add_alternative(message.html_body, subtype="html")
    return mime


def _describe_gmail_error(response: httpx.Response) -> str:
    """Extract Google's error message, falling back to the status code."""
    try:
        body = response.json()
    except ValueError:
        return f"Gmail API returned HTTP {response.status_code}: {response.text[:200]}"

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str):
        return error
    return f"Gmail API returned HTTP {response.status_code}"


class GmailTransport:
    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, send_url: str = GMAIL_SEND_URL):
        self._http_client = http_client
        self._send_url = send_url

    async def send(self, message: OutboundMessage, access_token: str) -> DeliveryReceipt:
        raw = base64.urlsafe_b64encode(build_mime_message(message).as_bytes()).decode()
        headers = {"Authorization": f"Bearer {access_token}"}

        try:
            if self._http_client is not None:
                response = await self._http_client.post(self._send_url, json={"raw": raw}, headers=headers)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(self._send_url, json={"raw": raw}, headers=headers)
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Send request failed: {exc}") from exc

        if response.status_code not in (200, 202):
            raise DeliveryError(
                _describe_gmail_error(response),
                auth_rejected=response.status_code == 401,
            )

        try:
            message_id = response.json().get("id")
        except (ValueError, AttributeError):
            message_id = None
        if not message_id:
            raise DeliveryError("Gmail API response did not include a message id")

        logger.info("Message %s accepted by Gmail", message_id)
        return DeliveryReceipt(message_id=message_id)
