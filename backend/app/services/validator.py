"""
Submission validation.

Turns whatever the request body decoded to into a NormalizedSubmission, or
raises MissingFieldError / InvalidEmailFormatError.  Pure function, no I/O.
"""

import re
from typing import Any, Mapping

from app.errors import InvalidEmailFormatError, MissingFieldError
from app.models.submission import NormalizedSubmission

REQUIRED_FIELDS = ("name", "email", "query")

# local@domain.tld — a sanity check, not RFC 5322.
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.\S+")


def _clean(value: Any) -> str:
    """Non-string values count as absent."""
    if not isinstance(value, str):
        return ""
    return value.strip()


def validate_submission(raw: Any) -> NormalizedSubmission:
    """
    Validate a raw submission record.

    Args:
        raw: Decoded request body.  Anything other than a mapping is treated
            as an empty record.

    Returns:
        NormalizedSubmission with every field trimmed.

    Raises:
        MissingFieldError: name, email or query is absent, non-string or blank.
            ``missing_fields`` lists all of them, in that order.
        InvalidEmailFormatError: the trimmed email fails EMAIL_PATTERN.
    """
    record = raw if isinstance(raw, Mapping) else {}
    cleaned = {field: _clean(record.get(field)) for field in REQUIRED_FIELDS}

    missing = [field for field in REQUIRED_FIELDS if not cleaned[field]]
    if missing:
        raise MissingFieldError(missing)

    if not EMAIL_PATTERN.fullmatch(cleaned["email"]):
        raise InvalidEmailFormatError(cleaned["email"])

    return NormalizedSubmission(**cleaned)
