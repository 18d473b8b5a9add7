"""
Failure taxonomy for the relay.

SubmissionError subclasses describe the caller's own input and are always
safe to echo back (HTTP 400).  DispatchError subclasses describe the token
provider or the mail transport; their detail is only exposed in development
mode (HTTP 500).
"""

from typing import Iterable, List


class RelayError(Exception):
    """Base class for every failure raised by the relay core."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ---------------------------------------------------------------------------
# Client input
# ---------------------------------------------------------------------------

class SubmissionError(RelayError):
    status_code = 400


class MissingFieldError(SubmissionError):
    """One or more of name/email/query is absent or blank."""

    def __init__(self, missing_fields: Iterable[str]):
        self.missing_fields: List[str] = list(missing_fields)
        super().__init__("Name, email, and query are required")


class InvalidEmailFormatError(SubmissionError):
    def __init__(self, email: str):
        self.email = email
        super().__init__("Please provide a valid email address")


# ---------------------------------------------------------------------------
# Provider / environment
# ---------------------------------------------------------------------------

class DispatchError(RelayError):
    status_code = 500


class CredentialError(DispatchError):
    """The OAuth2 token provider could not issue an access token."""


class DeliveryError(DispatchError):
    """
    The mail transport rejected or failed to deliver the message.

    ``auth_rejected`` is set when the provider refused the access token
    itself (HTTP 401), as opposed to quota, validation or network failures.
    """

    auth_rejected = False

    def __init__(self, message: str, auth_rejected: bool = False):
        super().__init__(message)
        self.auth_rejected = auth_rejected


class DispatchTimeoutError(DispatchError):
    def __init__(self, stage: str, timeout: float):
        self.stage = stage
        self.timeout = timeout
        DispatchError.__init__(self, f"{stage} timed out after {timeout:g}s")


class CredentialTimeoutError(DispatchTimeoutError, CredentialError):
    def __init__(self, timeout: float):
        super().__init__("Access token request", timeout)


class DeliveryTimeoutError(DispatchTimeoutError, DeliveryError):
    def __init__(self, timeout: float):
        super().__init__("Message send", timeout)
