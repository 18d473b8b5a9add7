"""
Outbound message composition.

The recipient is always the operator mailbox.  The submitter's address only
ever appears in Reply-To and in the body, so the relay cannot be pointed at
arbitrary third parties.
"""

from html import escape

from app.models.submission import NormalizedSubmission, OutboundMessage

SUBJECT_PREFIX = "Support Query from"


def _html_lines(text: str) -> str:
    return "<br>".join(escape(line) for line in text.splitlines())


def compose_message(submission: NormalizedSubmission, operator_mailbox: str) -> OutboundMessage:
    # Header values must stay on one line.
    subject_name = " ".join(submission.name.split())

    text_body = (
        f"Name: {submission.name}\n"
        f"Email: {submission.email}\n"
        f"\n"
        f"Query:\n"
        f"{submission.query}"
    )
    html_body = (
        f"<p><strong>Name:</strong> {escape(submission.name)}</p>\n"
        f"<p><strong>Email:</strong> {escape(submission.email)}</p>\n"
        f"<p><strong>Query:</strong><br>{_html_lines(submission.query)}</p>"
    )

    return OutboundMessage(
        sender=operator_mailbox,
        to=operator_mailbox,
        reply_to=submission.email,
        subject=f"{SUBJECT_PREFIX} {subject_name}",
        text_body=text_body,
        html_body=html_body,
    )
