"""
Event routes: CRUD, search, statistics and participant management.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..auth import get_current_user
from ..deps import get_event_service, get_message_service
from ..errors import NotFound
from ..models.event import Event, EventParticipant
from ..models.recipient import Recipient
from ..models.user import User
from ..responses import deleted, paginated, success
from ..schemas.event import EventCreate, EventPatch, EventUpdate, ParticipantAdd
from ..services import EventService, MessageService
from .messages import message_to_dict

router = APIRouter(prefix="/api/events", tags=["events"])


def event_to_dict(event: Event) -> dict:
    """Convert an Event model to a dictionary response."""
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "event_date": event.event_date.isoformat() if event.event_date else None,
        "location": event.location,
        "status": event.status,
        "max_participants": event.max_participants,
        "current_participants": event.current_participants,
        "is_public": event.is_public,
        "registration_deadline": event.registration_deadline.isoformat() if event.registration_deadline else None,
        "tags": event.tags or [],
        "metadata": event.metadata_ or {},
        "created_at": event.created_at.isoformat() if event.created_at else None,
        "updated_at": event.updated_at.isoformat() if event.updated_at else None,
    }


def participant_to_dict(participant: EventParticipant, recipient: Optional[Recipient] = None) -> dict:
    data = {
        "id": participant.id,
        "event_id": participant.event_id,
        "recipient_id": participant.recipient_id,
        "status": participant.status,
        "invited_at": participant.invited_at.isoformat() if participant.invited_at else None,
        "responded_at": participant.responded_at.isoformat() if participant.responded_at else None,
        "attended_at": participant.attended_at.isoformat() if participant.attended_at else None,
        "notes": participant.notes,
    }
    if recipient is not None:
        data["email"] = recipient.email
        data["first_name"] = recipient.first_name
        data["last_name"] = recipient.last_name
        data["company"] = recipient.company
    return data


@router.get("")
def list_events(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    current_user: User = Depends(get_current_user),
    events: EventService = Depends(get_event_service),
):
    """List the current user's events with optional status filter."""
    items, total = events.list(
        current_user.id,
        page=page,
        limit=limit,
        status=status,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return paginated([event_to_dict(e) for e in items], total, page, limit)


@router.get("/search")
def search_events(
    q: str = "",
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    events: EventService = Depends(get_event_service),
):
    results = events.search(current_user.id, q, limit=limit, offset=offset)
    return success([event_to_dict(e) for e in results])


@router.get("/upcoming")
def upcoming_events(
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    events: EventService = Depends(get_event_service),
):
    """Active events that have not happened yet, soonest first."""
    return success([event_to_dict(e) for e in events.get_upcoming(current_user.id, limit)])


@router.get("/stats")
def event_stats(
    current_user: User = Depends(get_current_user),
    events: EventService = Depends(get_event_service),
):
    return success(events.get_stats(current_user.id))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_event(
    event_data: EventCreate,
    current_user: User = Depends(get_current_user),
    events: EventService = Depends(get_event_service),
):
    event = events.create(current_user.id, event_data)
    return success(event_to_dict(event), "Event created")


@router.get("/{event_id}")
def get_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    events: EventService = Depends(get_event_service),
):
    """Get a single event with its participants (must belong to current user)."""
    event = events.get_owned(event_id, current_user.id)
    data = event_to_dict(event)
    data["participants"] = [
        participant_to_dict(p, r) for p, r in events.get_participants(event_id, current_user.id)
    ]
    return success(data)


@router.put("/{event_id}")
def update_event(
    event_id: str,
    event_data: EventUpdate,
    current_user: User = Depends(get_current_user),
    events: EventService = Depends(get_event_service),
):
    """Replace every mutable field of the event."""
    event = events.update(event_id, current_user.id, event_data)
    return success(event_to_dict(event), "Event updated")


@router.patch("/{event_id}")
def patch_event(
    event_id: str,
    event_data: EventPatch,
    current_user: User = Depends(get_current_user),
    events: EventService = Depends(get_event_service),
):
    event = events.patch(event_id, current_user.id, event_data)
    return success(event_to_dict(event), "Event updated")


@router.delete("/{event_id}")
def delete_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    events: EventService = Depends(get_event_service),
):
    events.delete(event_id, current_user.id)
    return deleted("Event deleted")


# ============================================================
# PARTICIPANTS
# ============================================================

@router.get("/{event_id}/participants")
def list_participants(
    event_id: str,
    current_user: User = Depends(get_current_user),
    events: EventService = Depends(get_event_service),
):
    rows = events.get_participants(event_id, current_user.id)
    return success([participant_to_dict(p, r) for p, r in rows])


@router.post("/{event_id}/participants")
def add_participant(
    event_id: str,
    body: ParticipantAdd,
    current_user: User = Depends(get_current_user),
    events: EventService = Depends(get_event_service),
):
    """Invite a recipient, or change the status of an existing invitation."""
    participant = events.add_participant(
        event_id,
        body.recipient_id,
        current_user.id,
        status=body.status,
        notes=body.notes,
    )
    return success(participant_to_dict(participant), "Participant saved")


@router.delete("/{event_id}/participants/{recipient_id}")
def remove_participant(
    event_id: str,
    recipient_id: str,
    current_user: User = Depends(get_current_user),
    events: EventService = Depends(get_event_service),
):
    if not events.remove_participant(event_id, recipient_id, current_user.id):
        raise NotFound("Participant", recipient_id)
    return deleted("Participant removed")


@router.get("/{event_id}/messages")
def event_messages(
    event_id: str,
    current_user: User = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
):
    """Messages linked to the event."""
    return success([message_to_dict(m) for m in messages.get_by_event(event_id, current_user.id)])
