"""
Message routes: drafting, scheduling, sending and delivery reporting.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..auth import get_current_user
from ..deps import get_message_service
from ..models.message import Message, MessageSend
from ..models.recipient import Recipient
from ..models.user import User
from ..responses import deleted, paginated, success
from ..schemas.message import (
    MessageCreate,
    MessageUpdate,
    ScheduleRequest,
    SendRequest,
    SendStatusUpdate,
)
from ..services import MessageService

router = APIRouter(prefix="/api/messages", tags=["messages"])


def message_to_dict(message: Message) -> dict:
    """Convert a Message model to a dictionary response."""
    return {
        "id": message.id,
        "event_id": message.event_id,
        "subject": message.subject,
        "content": message.content,
        "message_type": message.message_type,
        "status": message.status,
        "scheduled_at": message.scheduled_at.isoformat() if message.scheduled_at else None,
        "sent_at": message.sent_at.isoformat() if message.sent_at else None,
        "total_recipients": message.total_recipients,
        "successful_sends": message.successful_sends,
        "failed_sends": message.failed_sends,
        "metadata": message.metadata_ or {},
        "created_at": message.created_at.isoformat() if message.created_at else None,
        "updated_at": message.updated_at.isoformat() if message.updated_at else None,
    }


def send_to_dict(send: MessageSend, recipient: Optional[Recipient] = None) -> dict:
    data = {
        "id": send.id,
        "message_id": send.message_id,
        "recipient_id": send.recipient_id,
        "recipient_email": send.recipient_email,
        "status": send.status,
        "sent_at": send.sent_at.isoformat() if send.sent_at else None,
        "delivered_at": send.delivered_at.isoformat() if send.delivered_at else None,
        "read_at": send.read_at.isoformat() if send.read_at else None,
        "error_message": send.error_message,
    }
    if recipient is not None:
        data["first_name"] = recipient.first_name
        data["last_name"] = recipient.last_name
    return data


@router.get("")
def list_messages(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    event_id: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    current_user: User = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
):
    """List the current user's messages, optionally by status or event."""
    items, total = messages.list(
        current_user.id,
        page=page,
        limit=limit,
        status=status,
        event_id=event_id,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return paginated([message_to_dict(m) for m in items], total, page, limit)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_message(
    data: MessageCreate,
    current_user: User = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
):
    message = messages.create(current_user.id, data)
    return success(message_to_dict(message), "Message created")


@router.get("/search")
def search_messages(
    q: str = "",
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
):
    results = messages.search(current_user.id, q, limit=limit, offset=offset)
    return success([message_to_dict(m) for m in results])


@router.get("/stats")
def message_stats(
    current_user: User = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
):
    return success(messages.get_stats(current_user.id))


@router.patch("/sends/{send_id}")
def update_send_status(
    send_id: str,
    body: SendStatusUpdate,
    current_user: User = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
):
    """Report the delivery outcome for one recipient of a sent message."""
    send = messages.update_send_status(
        send_id,
        body.status,
        error_message=body.error_message,
        user_id=current_user.id,
    )
    return success(send_to_dict(send))


@router.get("/{message_id}")
def get_message(
    message_id: str,
    current_user: User = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
):
    return success(message_to_dict(messages.get_owned(message_id, current_user.id)))


@router.put("/{message_id}")
def update_message(
    message_id: str,
    data: MessageUpdate,
    current_user: User = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
):
    """Replace every mutable field. Sent messages cannot be changed."""
    message = messages.update(message_id, current_user.id, data)
    return success(message_to_dict(message), "Message updated")


@router.delete("/{message_id}")
def delete_message(
    message_id: str,
    current_user: User = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
):
    messages.delete(message_id, current_user.id)
    return deleted("Message deleted")


@router.post("/{message_id}/schedule")
def schedule_message(
    message_id: str,
    body: ScheduleRequest,
    current_user: User = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
):
    message = messages.schedule(message_id, current_user.id, body.scheduled_at)
    return success(message_to_dict(message), "Message scheduled")


@router.post("/{message_id}/send")
def send_message(
    message_id: str,
    body: SendRequest,
    current_user: User = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
):
    """Record one pending send per recipient and mark the message sent."""
    message = messages.send(message_id, current_user.id, body.recipient_ids)
    return success(message_to_dict(message), f"Message sent to {message.total_recipients} recipients")


@router.get("/{message_id}/sends")
def list_sends(
    message_id: str,
    current_user: User = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
):
    rows = messages.get_sends(message_id, current_user.id)
    return success([send_to_dict(s, r) for s, r in rows])
