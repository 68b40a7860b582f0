"""
Message and MessageSend models for outreach.
"""
from sqlalchemy import Column, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from ..database import Base
from ..types import UTCDateTime, new_id, utcnow

MESSAGE_TYPES = ("email", "sms", "whatsapp", "push")
MESSAGE_STATUSES = ("draft", "scheduled", "sending", "sent", "failed")
SEND_STATUSES = ("pending", "sent", "delivered", "read", "failed")

# Send statuses counted as successful deliveries on the parent message
SUCCESSFUL_SEND_STATUSES = ("sent", "delivered", "read")


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(String(36), ForeignKey("events.id", ondelete="SET NULL"), nullable=True, index=True)
    subject = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    message_type = Column(String(20), nullable=False, default="email")
    status = Column(String(20), nullable=False, default="draft", index=True)
    scheduled_at = Column(UTCDateTime, nullable=True)
    sent_at = Column(UTCDateTime, nullable=True)
    total_recipients = Column(Integer, nullable=False, default=0)
    successful_sends = Column(Integer, nullable=False, default=0)
    failed_sends = Column(Integer, nullable=False, default=0)
    metadata_ = Column("metadata", JSON, default=dict)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="messages")
    event = relationship("Event")
    sends = relationship(
        "MessageSend",
        back_populates="message",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class MessageSend(Base):
    __tablename__ = "message_sends"

    id = Column(String(36), primary_key=True, default=new_id)
    message_id = Column(String(36), ForeignKey("messages.id", ondelete="CASCADE"), nullable=False, index=True)
    # Kept nullable so delivery history survives a deleted recipient
    recipient_id = Column(String(36), ForeignKey("recipients.id", ondelete="SET NULL"), nullable=True, index=True)
    recipient_email = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="pending", index=True)
    sent_at = Column(UTCDateTime, nullable=True)
    delivered_at = Column(UTCDateTime, nullable=True)
    read_at = Column(UTCDateTime, nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    message = relationship("Message", back_populates="sends")
    recipient = relationship("Recipient", back_populates="sends")
