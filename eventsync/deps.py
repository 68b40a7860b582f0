"""
FastAPI dependencies that build request-scoped domain services.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from .auth import identity_logger
from .database import get_db
from .logging_config import get_logger
from .services import (
    EventService,
    IdentityService,
    MessageService,
    RecipientService,
    UserService,
)

user_logger = get_logger("users")
event_logger = get_logger("events")
recipient_logger = get_logger("recipients")
message_logger = get_logger("messages")


def get_identity_service(db: Session = Depends(get_db)) -> IdentityService:
    return IdentityService(db, identity_logger)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db, user_logger)


def get_event_service(db: Session = Depends(get_db)) -> EventService:
    return EventService(db, event_logger)


def get_recipient_service(db: Session = Depends(get_db)) -> RecipientService:
    return RecipientService(db, recipient_logger)


def get_message_service(db: Session = Depends(get_db)) -> MessageService:
    return MessageService(db, message_logger)
