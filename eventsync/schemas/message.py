from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

MessageType = Literal["email", "sms", "whatsapp", "push"]
MessageStatus = Literal["draft", "scheduled", "sending", "sent", "failed"]
SendStatus = Literal["pending", "sent", "delivered", "read", "failed"]


class MessageCreate(BaseModel):
    event_id: Optional[str] = None
    subject: str = Field(min_length=1, max_length=500)
    content: str = Field(min_length=1)
    message_type: MessageType = "email"
    scheduled_at: Optional[datetime] = None
    status: Optional[Literal["draft", "scheduled"]] = None
    metadata: Dict[str, Any] = {}


class MessageUpdate(MessageCreate):
    """Complete replacement of every mutable field."""
    status: Optional[MessageStatus] = None


class ScheduleRequest(BaseModel):
    scheduled_at: datetime


class SendRequest(BaseModel):
    recipient_ids: List[str] = Field(min_length=1)


class SendStatusUpdate(BaseModel):
    status: SendStatus
    error_message: Optional[str] = None
