# anonbox/core/blocking.py

import logging
from enum import Enum
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from anonbox.core.errors import ConflictError, StoreUnavailable, ValidationError
from anonbox.core.identity import is_sender_identity, sender_label
from anonbox.models.block import BlockEntry

logger = logging.getLogger(__name__)


class BlockReason(str, Enum):
    SPAM = "spam"
    HARASSMENT = "harassment"
    INAPPROPRIATE_CONTENT = "inappropriate_content"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"
    OTHER = "other"


BLOCK_REASON_TEXT = {
    BlockReason.SPAM: "Spam",
    BlockReason.HARASSMENT: "Harassment",
    BlockReason.INAPPROPRIATE_CONTENT: "Inappropriate Content",
    BlockReason.SUSPICIOUS_ACTIVITY: "Suspicious Activity",
    BlockReason.OTHER: "Other",
}


def parse_block_reason(reason) -> BlockReason:
    if reason is None or reason == "":
        return BlockReason.OTHER
    try:
        return BlockReason(reason)
    except ValueError:
        raise ValidationError("Invalid reason")


def block_reason_text(reason) -> str:
    try:
        return BLOCK_REASON_TEXT[BlockReason(reason)]
    except ValueError:
        return "Unknown"


def default_block_label(sender_identity: str, message_id: str | None = None) -> str:
    if message_id:
        return f"Message {message_id[:8]}"
    return f"Sender {sender_identity[:8]}"


def add_block(
    db: Session,
    user_id: str,
    sender_identity: str,
    reason=None,
    label: str | None = None,
    message_id: str | None = None,
) -> BlockEntry:
    """Block a sender identity for one recipient."""
    if not is_sender_identity(sender_identity):
        raise ValidationError("IP hash is required")
    block_reason = parse_block_reason(reason)

    entry = BlockEntry(
        user_id=user_id,
        blocked_identity=sender_identity,
        reason=block_reason.value,
        blocked_label=label or default_block_label(sender_identity, message_id),
    )
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        # The unique constraint decides: concurrent duplicates leave one row
        db.rollback()
        raise ConflictError()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to store block for user %s: %s", user_id, e)
        raise StoreUnavailable("Failed to block sender")

    db.refresh(entry)
    logger.info("User %s blocked %s (%s)", user_id, sender_label(sender_identity), block_reason.value)
    return entry


def remove_block(db: Session, user_id: str, block_id: str) -> bool:
    """Delete a block owned by user_id. Someone else's id matches nothing."""
    try:
        deleted = (
            db.query(BlockEntry)
            .filter(BlockEntry.id == block_id, BlockEntry.user_id == user_id)
            .delete(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to remove block %s: %s", block_id, e)
        raise StoreUnavailable("Failed to unblock sender")
    return deleted > 0


def list_blocks(db: Session, user_id: str):
    try:
        return (
            db.query(BlockEntry)
            .filter(BlockEntry.user_id == user_id)
            .order_by(BlockEntry.created_at.desc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.error("Failed to list blocks for user %s: %s", user_id, e)
        raise StoreUnavailable("Failed to fetch blocked senders")


def is_blocked(db: Session, user_id: str, sender_identity: str) -> bool:
    """
    Store errors propagate: the ingestion pipeline treats them as a
    rejection, so an unreachable registry never lets a message through.
    """
    return (
        db.query(BlockEntry.id)
        .filter(BlockEntry.user_id == user_id, BlockEntry.blocked_identity == sender_identity)
        .first()
        is not None
    )
