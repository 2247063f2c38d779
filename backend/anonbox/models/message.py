from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship
from anonbox.core.message_logic import utcnow, MAX_CONTENT_LENGTH
from anonbox.models.base import Base, new_id


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        CheckConstraint(f"length(content) <= {MAX_CONTENT_LENGTH}", name="content_length"),
        CheckConstraint("length(trim(content)) > 0", name="content_not_empty"),
        CheckConstraint("length(sender_identity) = 64", name="sender_identity_length"),
        # Serves both the rate limiter and the suspicion history query
        Index("idx_messages_sender_recipient", "sender_identity", "recipient_id", "created_at"),
        Index("idx_messages_inbox", "recipient_id", "is_read", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=new_id)

    recipient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Hashed sender address, never the raw address
    sender_identity = Column(String(64), nullable=False)

    content = Column(String(MAX_CONTENT_LENGTH), nullable=False)

    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    recipient = relationship("User", back_populates="messages")
