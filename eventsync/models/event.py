"""
Event and EventParticipant models.
"""
from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from ..database import Base
from ..types import UTCDateTime, new_id, utcnow

EVENT_STATUSES = ("draft", "active", "completed", "cancelled")
PARTICIPANT_STATUSES = ("invited", "confirmed", "declined", "attended", "no_show")

# Participant statuses counted in Event.current_participants
COUNTED_PARTICIPANT_STATUSES = ("confirmed", "attended")


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    event_date = Column(UTCDateTime, nullable=False, index=True)
    location = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default="draft", index=True)
    max_participants = Column(Integer, nullable=True)
    current_participants = Column(Integer, nullable=False, default=0)
    is_public = Column(Boolean, nullable=False, default=False)
    registration_deadline = Column(UTCDateTime, nullable=True)
    tags = Column(JSON, default=list)
    metadata_ = Column("metadata", JSON, default=dict)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="events")
    participants = relationship(
        "EventParticipant",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class EventParticipant(Base):
    __tablename__ = "event_participants"
    __table_args__ = (
        UniqueConstraint("event_id", "recipient_id", name="uq_event_participants_event_recipient"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_id = Column(String(36), ForeignKey("recipients.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="invited")
    invited_at = Column(UTCDateTime, default=utcnow)
    responded_at = Column(UTCDateTime, nullable=True)
    attended_at = Column(UTCDateTime, nullable=True)
    notes = Column(Text, nullable=True)

    # Relationships
    event = relationship("Event", back_populates="participants")
    recipient = relationship("Recipient", back_populates="participations")
