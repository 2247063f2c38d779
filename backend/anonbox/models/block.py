from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from anonbox.core.message_logic import utcnow
from anonbox.models.base import Base, new_id


class BlockEntry(Base):
    __tablename__ = "blocked_senders"
    __table_args__ = (
        # A recipient can block the same sender identity only once
        UniqueConstraint("user_id", "blocked_identity", name="uq_blocked_senders_user_identity"),
        CheckConstraint("length(blocked_identity) = 64", name="blocked_identity_length"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    blocked_identity = Column(String(64), nullable=False, index=True)
    reason = Column(String(32), nullable=False, default="other")
    blocked_label = Column(String(64), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "blocked_ip_hash": self.blocked_identity,
            "reason": self.reason,
            "blocked_identifier": self.blocked_label,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
