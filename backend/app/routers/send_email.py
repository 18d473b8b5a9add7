"""
Support-query relay router.

Endpoints:
  POST /send-email  — validate {name, email, query} and relay it to the
                      operator mailbox

Response mapping
----------------
  MissingFieldError        400  message + missingFields
  InvalidEmailFormatError  400  message
  CredentialError          500  generic message (+ error detail in development)
  DeliveryError            500  generic message (+ error detail in development)
  success                  200  success, message, messageId, timestamp
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.config import Settings
from app.errors import CredentialError, DispatchError, MissingFieldError, SubmissionError
from app.models.submission import ErrorResponse, SendEmailResponse
from app.services.dispatcher import MailDispatcher
from app.services.validator import validate_submission

logger = logging.getLogger(__name__)

router = APIRouter()

DISPATCH_FAILURE_MESSAGE = "Failed to send email"


def get_relay_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_dispatcher(request: Request) -> Optional[MailDispatcher]:
    """Dispatcher built once at startup; None when mail is not configured."""
    return getattr(request.app.state, "dispatcher", None)


async def _read_body(request: Request) -> Any:
    """Decode the JSON body; malformed or empty bodies become an empty record."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        logger.warning("Rejected non-JSON request body on /send-email")
        return {}


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def submission_error_response(exc: SubmissionError) -> JSONResponse:
    body = ErrorResponse(message=exc.message)
    if isinstance(exc, MissingFieldError):
        body.missing_fields = exc.missing_fields
    return JSONResponse(status_code=exc.status_code, content=body.to_content())


def dispatch_error_response(exc: DispatchError, settings: Settings) -> JSONResponse:
    """500 body; provider detail is only included in development mode."""
    body = ErrorResponse(message=DISPATCH_FAILURE_MESSAGE)
    if settings.is_development:
        body.error = exc.message
    return JSONResponse(status_code=exc.status_code, content=body.to_content())


@router.post("/send-email")
async def send_email(
    request: Request,
    dispatcher: Optional[MailDispatcher] = Depends(get_dispatcher),
    settings: Settings = Depends(get_relay_settings),
):
    payload = await _read_body(request)

    try:
        submission = validate_submission(payload)
    except SubmissionError as exc:
        logger.info("Rejected submission: %s", exc.message)
        return submission_error_response(exc)

    try:
        if dispatcher is None:
            raise CredentialError("OAuth2 mail credentials are not configured")
        receipt = await dispatcher.dispatch(submission)
    except DispatchError as exc:
        logger.error(f"Error sending email: {exc.message}")
        return dispatch_error_response(exc, settings)

    body = SendEmailResponse(message_id=receipt.message_id, timestamp=_timestamp())
    return JSONResponse(status_code=200, content=body.model_dump(by_alias=True))
