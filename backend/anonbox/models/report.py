from sqlalchemy import Column, String, DateTime, ForeignKey
from anonbox.core.message_logic import utcnow, MAX_CONTENT_LENGTH
from anonbox.models.base import Base, new_id


class Report(Base):
    __tablename__ = "message_reports"

    id = Column(String(36), primary_key=True, default=new_id)

    # Kept after the message is deleted; sender_identity is what matters downstream
    message_id = Column(String(36), ForeignKey("messages.id", ondelete="SET NULL"), nullable=True, index=True)
    reporter_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    reason = Column(String(32), nullable=False)
    details = Column(String(MAX_CONTENT_LENGTH), nullable=True)
    sender_identity = Column(String(64), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "message_id": self.message_id,
            "reporter_id": self.reporter_id,
            "reason": self.reason,
            "details": self.details,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
