# anonbox/models/user.py

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from anonbox.core.message_logic import utcnow
from anonbox.models.base import Base, new_id


class User(Base):
    """A recipient: owns a public inbox, blocks and reports."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(20), unique=True, nullable=False, index=True)

    # SHA-256 of the bearer token; the token itself is never stored
    token_hash = Column(String(64), unique=True, nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Account deletion cascades to everything the recipient owns
    messages = relationship("Message", back_populates="recipient", cascade="all, delete-orphan")
    blocks = relationship("BlockEntry", cascade="all, delete-orphan")
    reports = relationship("Report", cascade="all, delete-orphan")
