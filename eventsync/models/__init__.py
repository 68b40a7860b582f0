from .user import User
from .event import Event, EventParticipant
from .recipient import Recipient
from .message import Message, MessageSend

__all__ = [
    "User",
    "Event",
    "EventParticipant",
    "Recipient",
    "Message",
    "MessageSend",
]
