import logging
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from anonbox.core.errors import (
    AuthorizationError, NotFoundError, RateLimitError, StoreUnavailable, ValidationError,
)
from anonbox.core.message import delete_message, list_messages, mark_read, message_to_dict
from anonbox.core.message_logic import utcnow
from anonbox.core.pipeline import IngestionPipeline, RejectReason
from anonbox.core.reports import submit_report
from anonbox.core.security import get_current_user
from anonbox.core.suspicion import scan_senders
from anonbox.core.throttle import ingest_limit, limiter, sender_address
from anonbox.infra.postgres import get_db
from anonbox.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages")

pipeline = IngestionPipeline()

# Blocked and failed sends look alike to the sender
SEND_FAILED = "Unable to send message."


class SendMessageSchema(BaseModel):
    recipient_username: str = Field(min_length=1, max_length=20)
    content: str


class ReportMessageSchema(BaseModel):
    message_id: str = Field(min_length=1)
    reason: str
    details: str | None = None


def _raise_rejection(outcome):
    reason = outcome.reason
    if reason is RejectReason.INVALID_CONTENT:
        raise ValidationError(outcome.detail)
    if reason is RejectReason.UNKNOWN_RECIPIENT:
        raise NotFoundError(outcome.detail)
    if reason is RejectReason.BLOCKED:
        raise AuthorizationError(SEND_FAILED)
    if reason is RejectReason.RATE_LIMITED:
        raise RateLimitError(
            f"Rate limit exceeded. Try again in {outcome.retry_after} seconds.",
            retry_after=outcome.retry_after,
        )
    raise StoreUnavailable(SEND_FAILED)


@router.post("/send")
@limiter.limit(ingest_limit)
def send_message(request: Request, payload: SendMessageSchema, db: Session = Depends(get_db)):
    """Public, unauthenticated: anyone can post to a recipient's inbox."""
    # The sender never names their own address; it comes from the connection
    outcome = pipeline.run(db, payload.recipient_username, payload.content, sender_address(request))
    if not outcome.accepted:
        _raise_rejection(outcome)

    return {
        "success": True,
        "message": "Message sent successfully",
        "message_id": outcome.message_id,
        "remaining": outcome.remaining,
    }


@router.get("/list")
def list_inbox(
    limit: int = 50,
    offset: int = 0,
    unread_only: bool = False,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    limit = max(1, min(limit, 200))
    offset = max(0, offset)
    try:
        messages = list_messages(db, user.id, limit=limit, offset=offset, unread_only=unread_only)
    except SQLAlchemyError as e:
        logger.error("Failed to fetch messages for user %s: %s", user.id, e)
        raise StoreUnavailable("Failed to fetch messages")

    # Advisory only: a failing detector hides warnings, it never fails the inbox
    try:
        found = scan_senders(db, user.id, {m.sender_identity for m in messages}, utcnow())
        warnings = [w.to_dict() for w in found]
        warnings_available = True
    except Exception as e:
        logger.warning("Suspicious activity scan unavailable: %s", e)
        warnings = []
        warnings_available = False

    return {
        "messages": [message_to_dict(m) for m in messages],
        "count": len(messages),
        "warnings": warnings,
        "warnings_available": warnings_available,
    }


@router.post("/report", status_code=201)
def report_message(payload: ReportMessageSchema, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    report = submit_report(db, payload.message_id, user.id, payload.reason, payload.details)
    return {
        "success": True,
        "message": "Message reported successfully",
        "report": report.to_dict(),
        # Lets the client offer a one-click block
        "sender_ip_hash": report.sender_identity,
    }


@router.post("/{message_id}/read")
def mark_message_read(message_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    message = mark_read(db, user.id, message_id)
    if message is None:
        raise NotFoundError("Message not found")
    return {"success": True, "message": message_to_dict(message)}


@router.delete("/{message_id}")
def delete_inbox_message(message_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not delete_message(db, user.id, message_id):
        raise NotFoundError("Message not found")
    return {"success": True}
