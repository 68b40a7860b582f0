"""
Dashboard statistics across events, recipients and messages.
"""
from fastapi import APIRouter, Depends

from ..auth import get_current_user
from ..deps import get_event_service, get_message_service, get_recipient_service
from ..models.user import User
from ..responses import success
from ..services import EventService, MessageService, RecipientService

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("")
def get_stats(
    current_user: User = Depends(get_current_user),
    events: EventService = Depends(get_event_service),
    recipients: RecipientService = Depends(get_recipient_service),
    messages: MessageService = Depends(get_message_service),
):
    """Combined statistics for the current user's dashboard."""
    return success({
        "events": events.get_stats(current_user.id),
        "recipients": recipients.get_stats(current_user.id),
        "messages": messages.get_stats(current_user.id),
    })
