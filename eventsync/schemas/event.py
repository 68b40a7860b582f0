from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

EventStatus = Literal["draft", "active", "completed", "cancelled"]
ParticipantStatus = Literal["invited", "confirmed", "declined", "attended", "no_show"]


class EventBase(BaseModel):
    title: str = Field(min_length=3, max_length=255)
    description: Optional[str] = None
    event_date: datetime
    location: Optional[str] = Field(default=None, max_length=500)
    status: EventStatus = "draft"
    max_participants: Optional[int] = Field(default=None, ge=1)
    is_public: bool = False
    registration_deadline: Optional[datetime] = None
    tags: List[str] = []
    metadata: Dict[str, Any] = {}


class EventCreate(EventBase):
    pass


class EventUpdate(EventBase):
    """Complete replacement of every mutable field."""


class EventPatch(BaseModel):
    """Partial update: only the fields that are set are changed."""
    title: Optional[str] = Field(default=None, min_length=3, max_length=255)
    description: Optional[str] = None
    event_date: Optional[datetime] = None
    location: Optional[str] = Field(default=None, max_length=500)
    status: Optional[EventStatus] = None
    max_participants: Optional[int] = Field(default=None, ge=1)
    is_public: Optional[bool] = None
    registration_deadline: Optional[datetime] = None
    tags: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None


class ParticipantAdd(BaseModel):
    recipient_id: str
    status: ParticipantStatus = "invited"
    notes: Optional[str] = None
