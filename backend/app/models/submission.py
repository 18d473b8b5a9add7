"""
Pydantic models for the support-query relay.

Models:
  NormalizedSubmission  — trimmed, validated {name, email, query}
  OutboundMessage       — fully composed email handed to the transport
  DeliveryReceipt       — transport receipt (opaque message id)
  SendEmailResponse     — 200 body for POST /send-email
  ErrorResponse         — 400/404/500 body (success=false)
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class NormalizedSubmission(BaseModel):
    """
    A submission that passed validation.

    Only validate_submission() should construct these; every field is already
    trimmed and the email has passed the syntax check.
    """

    model_config = {"frozen": True}

    name: str
    email: str
    query: str


class OutboundMessage(BaseModel):
    model_config = {"frozen": True}

    sender: str
    to: str
    reply_to: str
    subject: str
    text_body: str
    html_body: str


class DeliveryReceipt(BaseModel):
    model_config = {"frozen": True}

    message_id: str


# ---------------------------------------------------------------------------
# Response bodies
# ---------------------------------------------------------------------------

class SendEmailResponse(BaseModel):
    success: bool = True
    message: str = "Email sent successfully"
    message_id: str = Field(serialization_alias="messageId")
    timestamp: str


class ErrorResponse(BaseModel):
    """
    Shared failure body.

    missing_fields is only set for missing-field rejections, error only for
    dispatch failures in development mode, available_endpoints only for 404.
    """

    success: bool = False
    message: str
    missing_fields: Optional[List[str]] = Field(default=None, serialization_alias="missingFields")
    error: Optional[str] = None
    available_endpoints: Optional[List[str]] = Field(
        default=None, serialization_alias="availableEndpoints"
    )

    def to_content(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
