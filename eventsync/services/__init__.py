from .identity import IdentityService
from .users import UserService
from .events import EventService
from .recipients import RecipientService
from .messages import MessageService

__all__ = [
    "IdentityService",
    "UserService",
    "EventService",
    "RecipientService",
    "MessageService",
]
