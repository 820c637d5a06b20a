from sqlalchemy import Column, String, DateTime, Text, ForeignKey, JSON
from datetime import datetime
import uuid

from .database import Base


class Message(Base):
    """Direct message between two users.

    Call history is stored here too: one row per participant with
    ``message_type='call'`` and the outcome in ``call_data``.
    """
    __tablename__ = "messages"

    # Primary key
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Participants
    sender_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    receiver_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Content
    content = Column(Text, nullable=False, default="")
    message_type = Column(String(20), nullable=False, default="text", index=True)

    # Call data (duration, call_type, status, timestamp) for call rows
    call_data = Column(JSON, nullable=True)

    status = Column(String(20), nullable=False, default="sent")

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def to_dict(self):
        """Convert to dictionary for JSON response"""
        return {
            "id": self.id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "content": self.content,
            "message_type": self.message_type,
            "call_data": self.call_data,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Message {self.id} {self.sender_id} -> {self.receiver_id} ({self.message_type})>"
