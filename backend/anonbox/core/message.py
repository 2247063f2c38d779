from datetime import datetime
from sqlalchemy import func
from sqlalchemy.orm import Session
from anonbox.core.message_logic import utcnow
from anonbox.models.message import Message


def store_message(
    db: Session,
    recipient_id: str,
    sender_identity: str,
    content: str,
    created_at: datetime | None = None,
) -> Message:
    """Add a message to the open transaction; the caller commits."""
    message = Message(
        recipient_id=recipient_id,
        sender_identity=sender_identity,
        content=content,
        created_at=created_at or utcnow(),
    )
    db.add(message)
    db.flush()
    return message


def get_message(db: Session, message_id: str) -> Message | None:
    return db.get(Message, message_id)


def list_messages(
    db: Session,
    recipient_id: str,
    limit: int = 50,
    offset: int = 0,
    unread_only: bool = False,
):
    """Inbox for a recipient, most recent first"""
    query = db.query(Message).filter(Message.recipient_id == recipient_id)
    if unread_only:
        query = query.filter(Message.is_read.is_(False))
    return (
        query.order_by(Message.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def sender_history(db: Session, sender_identity: str, recipient_id: str, since: datetime):
    """Messages from one sender identity to one recipient, oldest first."""
    return (
        db.query(Message)
        .filter(
            Message.sender_identity == sender_identity,
            Message.recipient_id == recipient_id,
            Message.created_at >= since,
        )
        .order_by(Message.created_at.asc())
        .all()
    )


def window_count(db: Session, sender_identity: str, recipient_id: str, since: datetime) -> int:
    """Accepted messages from one identity to one recipient inside the window."""
    count = (
        db.query(func.count(Message.id))
        .filter(
            Message.sender_identity == sender_identity,
            Message.recipient_id == recipient_id,
            Message.created_at >= since,
        )
        .scalar()
    )
    return count or 0


def window_created_at(
    db: Session, sender_identity: str, recipient_id: str, since: datetime, position: int
) -> datetime | None:
    """created_at of the in-window message at ``position``, oldest first (0-based)."""
    return (
        db.query(Message.created_at)
        .filter(
            Message.sender_identity == sender_identity,
            Message.recipient_id == recipient_id,
            Message.created_at >= since,
        )
        .order_by(Message.created_at.asc())
        .offset(position)
        .limit(1)
        .scalar()
    )


def mark_read(db: Session, recipient_id: str, message_id: str) -> Message | None:
    message = (
        db.query(Message)
        .filter(Message.id == message_id, Message.recipient_id == recipient_id)
        .first()
    )
    if message is None:
        return None

    if not message.is_read:
        message.is_read = True
        message.read_at = utcnow()
        db.commit()
        db.refresh(message)
    return message


def delete_message(db: Session, recipient_id: str, message_id: str) -> bool:
    deleted = (
        db.query(Message)
        .filter(Message.id == message_id, Message.recipient_id == recipient_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted > 0


def message_to_dict(message: Message) -> dict:
    return {
        "id": message.id,
        "content": message.content,
        "is_read": message.is_read,
        "sender_ip_hash": message.sender_identity,
        "created_at": message.created_at.isoformat(),
        "read_at": message.read_at.isoformat() if message.read_at else None,
    }
