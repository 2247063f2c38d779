# anonbox/core/reports.py

import logging
from enum import Enum
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from anonbox.core.errors import AuthorizationError, NotFoundError, StoreUnavailable, ValidationError
from anonbox.core.identity import sender_label
from anonbox.core.message import get_message
from anonbox.core.message_logic import MAX_CONTENT_LENGTH
from anonbox.models.report import Report

logger = logging.getLogger(__name__)


class ReportReason(str, Enum):
    SPAM = "spam"
    HARASSMENT = "harassment"
    INAPPROPRIATE = "inappropriate_content"
    THREATS = "threats"
    HATE_SPEECH = "hate_speech"
    OTHER = "other"


REPORT_REASON_TEXT = {
    ReportReason.SPAM: "Spam",
    ReportReason.HARASSMENT: "Harassment",
    ReportReason.INAPPROPRIATE: "Inappropriate Content",
    ReportReason.THREATS: "Threats or Violence",
    ReportReason.HATE_SPEECH: "Hate Speech",
    ReportReason.OTHER: "Other",
}


def parse_report_reason(reason) -> ReportReason:
    try:
        return ReportReason(reason)
    except ValueError:
        raise ValidationError("Valid reason is required")


def report_reason_text(reason) -> str:
    try:
        return REPORT_REASON_TEXT[ReportReason(reason)]
    except ValueError:
        return "Unknown"


def submit_report(
    db: Session,
    message_id: str,
    reporter_id: str,
    reason,
    details: str | None = None,
) -> Report:
    """
    Record a complaint against a message the reporter received.

    Reports are not deduplicated: each submission is its own row. The
    returned report carries the sender identity so the caller can offer
    a one-click block.
    """
    if not message_id:
        raise ValidationError("Message ID is required")
    report_reason = parse_report_reason(reason)
    if details is not None:
        details = details.strip() or None
    if details and len(details) > MAX_CONTENT_LENGTH:
        raise ValidationError(f"Details must be at most {MAX_CONTENT_LENGTH} characters")

    try:
        message = get_message(db, message_id)
    except SQLAlchemyError as e:
        logger.error("Failed to load message %s for report: %s", message_id, e)
        raise StoreUnavailable()

    if message is None:
        raise NotFoundError("Message not found")
    if message.recipient_id != reporter_id:
        raise AuthorizationError("You can only report messages sent to you")

    report = Report(
        message_id=message.id,
        reporter_id=reporter_id,
        reason=report_reason.value,
        details=details,
        sender_identity=message.sender_identity,
    )
    db.add(report)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to store report for message %s: %s", message_id, e)
        raise StoreUnavailable("Failed to report message")

    db.refresh(report)
    logger.info(
        "User %s reported message %s from %s (%s)",
        reporter_id, message_id, sender_label(report.sender_identity), report_reason.value,
    )
    return report
