"""
Recipient model for the per-user contact directory.
"""
from sqlalchemy import Boolean, Column, ForeignKey, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from ..database import Base
from ..types import UTCDateTime, new_id, utcnow


class Recipient(Base):
    __tablename__ = "recipients"
    __table_args__ = (
        UniqueConstraint("user_id", "email", name="uq_recipients_user_email"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    phone = Column(String(20), nullable=True)
    company = Column(String(255), nullable=True)
    position = Column(String(255), nullable=True)
    tags = Column(JSON, default=list)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    opt_out = Column(Boolean, nullable=False, default=False)
    opt_out_date = Column(UTCDateTime, nullable=True)
    metadata_ = Column("metadata", JSON, default=dict)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="recipients")
    participations = relationship(
        "EventParticipant",
        back_populates="recipient",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    sends = relationship("MessageSend", back_populates="recipient", passive_deletes=True)
