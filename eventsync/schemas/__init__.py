from .auth import UserCreate, UserLogin, UserResponse, TokenResponse, AuthResponse, RefreshRequest
from .user import ProfileUpdate, PasswordChange, EmailChange
from .event import EventCreate, EventUpdate, EventPatch, ParticipantAdd
from .recipient import RecipientCreate, RecipientUpdate, RecipientPatch, RecipientBulkCreate
from .message import MessageCreate, MessageUpdate, ScheduleRequest, SendRequest, SendStatusUpdate

__all__ = [
    "UserCreate", "UserLogin", "UserResponse", "TokenResponse", "AuthResponse", "RefreshRequest",
    "ProfileUpdate", "PasswordChange", "EmailChange",
    "EventCreate", "EventUpdate", "EventPatch", "ParticipantAdd",
    "RecipientCreate", "RecipientUpdate", "RecipientPatch", "RecipientBulkCreate",
    "MessageCreate", "MessageUpdate", "ScheduleRequest", "SendRequest", "SendStatusUpdate",
]
