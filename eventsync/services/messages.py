"""
Message domain and its delivery state machine.

    draft ──► scheduled ──► sending ──► sent
      └──────────────────────►┘

``send`` moves a message through ``sending`` to ``sent`` in one transaction,
recording one pending MessageSend per recipient. Nothing is handed to a
transport here; a delivery worker reports back through
``update_send_status``.
"""
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func

from ..errors import (
    AccessDenied,
    AlreadySent,
    CannotDeleteSending,
    CannotModifySent,
    InvalidState,
    NotFound,
    ValidationError,
)
from ..models.event import Event
from ..models.message import (
    MESSAGE_STATUSES,
    SEND_STATUSES,
    SUCCESSFUL_SEND_STATUSES,
    Message,
    MessageSend,
)
from ..models.recipient import Recipient
from ..schemas.message import MessageCreate, MessageUpdate
from ..types import as_utc, utcnow
from .base import BaseService, one_of, require_future

SENDABLE_STATUSES = ("draft", "scheduled")
SCHEDULABLE_STATUSES = ("draft", "scheduled", "failed")

# Timestamp stamped on a MessageSend when it reaches a status
SEND_STATUS_TIMESTAMPS = {
    "sent": "sent_at",
    "delivered": "delivered_at",
    "read": "read_at",
}


class MessageService(BaseService):
    model = Message
    resource = "Message"
    sortable_columns = (
        "created_at",
        "updated_at",
        "subject",
        "status",
        "scheduled_at",
        "sent_at",
    )

    def create(self, user_id: str, data: MessageCreate) -> Message:
        scheduled_at = require_future(data.scheduled_at, "scheduled_at")
        status = data.status or ("scheduled" if scheduled_at else "draft")
        if status == "scheduled" and scheduled_at is None:
            raise ValidationError("scheduled_at is required for a scheduled message", field="scheduled_at")
        if data.event_id:
            self._check_event(data.event_id, user_id)

        message = Message(
            user_id=user_id,
            event_id=data.event_id,
            subject=data.subject,
            content=data.content,
            message_type=data.message_type,
            status=status,
            scheduled_at=scheduled_at,
            metadata_=data.metadata or {},
        )
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)

        self.logger.info("Message created", message_id=message.id, user_id=user_id, status=status)
        return message

    def list(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        event_id: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Tuple[List[Message], int]:
        query = self.db.query(Message).filter(Message.user_id == user_id)
        if status:
            query = query.filter(Message.status == one_of(status, MESSAGE_STATUSES, "status"))
        if event_id:
            query = query.filter(Message.event_id == event_id)
        query = self._ordered(query, sort_by, sort_order)
        return self._page(query, page, limit)

    def update(self, id: str, user_id: str, data: MessageUpdate) -> Message:
        """Replace every mutable field. Sent and sending messages are frozen."""
        message = self.get_owned(id, user_id)
        if message.status == "sent":
            raise CannotModifySent(status=message.status)
        if message.status == "sending":
            raise InvalidState("Cannot modify a message that is being sent", status=message.status)

        status = data.status or message.status
        if status in ("sending", "sent"):
            raise ValidationError("Use send to deliver a message", field="status")
        # failed is only ever reached through delivery bookkeeping
        if status == "failed" and message.status != "failed":
            raise ValidationError("A message cannot be marked failed directly", field="status")

        scheduled_at = data.scheduled_at
        if scheduled_at is not None and as_utc(scheduled_at) != message.scheduled_at:
            scheduled_at = require_future(scheduled_at, "scheduled_at")
        if status == "scheduled" and scheduled_at is None:
            raise ValidationError("scheduled_at is required for a scheduled message", field="scheduled_at")
        if data.event_id:
            self._check_event(data.event_id, user_id)

        message.event_id = data.event_id
        message.subject = data.subject
        message.content = data.content
        message.message_type = data.message_type
        message.status = status
        message.scheduled_at = scheduled_at
        message.metadata_ = data.metadata or {}
        self.db.commit()
        self.db.refresh(message)
        return message

    def delete(self, id: str, user_id: str) -> bool:
        message = self.get_owned(id, user_id)
        if message.status == "sending":
            raise CannotDeleteSending(status=message.status)
        if message.status == "sent":
            raise CannotModifySent("Cannot delete a sent message", status=message.status)

        self.db.delete(message)
        self.db.commit()
        return True

    def schedule(self, id: str, user_id: str, scheduled_at: datetime) -> Message:
        scheduled_at = require_future(scheduled_at, "scheduled_at")
        message = self.get_owned(id, user_id)
        if message.status not in SCHEDULABLE_STATUSES:
            raise AlreadySent(f"Cannot schedule a message that is {message.status}", status=message.status)

        message.status = "scheduled"
        message.scheduled_at = scheduled_at
        self.db.commit()
        self.db.refresh(message)

        self.logger.info("Message scheduled", message_id=id, scheduled_at=scheduled_at.isoformat())
        return message

    def send(self, id: str, user_id: str, recipient_ids: Sequence[str]) -> Message:
        """Record one pending send per recipient and mark the message sent.

        All or nothing: if any recipient is unknown, foreign or opted out,
        or the store fails, no send rows persist and the message keeps its
        previous status.
        """
        message = self.get_owned(id, user_id)
        if message.status in ("sent", "sending"):
            raise AlreadySent(status=message.status)
        if message.status not in SENDABLE_STATUSES:
            raise InvalidState(f"Cannot send a message that is {message.status}", status=message.status)
        if not recipient_ids:
            raise ValidationError("At least one recipient is required", field="recipient_ids")
        if len(set(recipient_ids)) != len(recipient_ids):
            raise ValidationError("Recipient ids must be unique", field="recipient_ids")

        log = self.logger.bind(message_id=id, user_id=user_id)
        previous_status = message.status
        try:
            message.status = "sending"
            self.db.flush()

            for recipient_id in recipient_ids:
                recipient = self.db.query(Recipient).filter(
                    Recipient.id == recipient_id,
                    Recipient.user_id == user_id,
                ).first()
                if recipient is None:
                    raise NotFound("Recipient", recipient_id)
                if recipient.opt_out:
                    raise ValidationError(
                        "Recipient has opted out",
                        field="recipient_ids",
                        recipient_id=recipient_id,
                    )
                self.db.add(MessageSend(
                    message_id=message.id,
                    recipient_id=recipient.id,
                    recipient_email=recipient.email,
                    status="pending",
                ))

            message.total_recipients = len(recipient_ids)
            message.successful_sends = 0
            message.failed_sends = 0
            message.status = "sent"
            message.sent_at = utcnow()
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            log.warning(
                "Message send rolled back",
                status=previous_status,
                error_type=type(e).__name__,
            )
            raise

        self.db.refresh(message)
        log.info("Message sent", recipients=len(recipient_ids))
        return message

    def update_send_status(
        self,
        send_id: str,
        status: str,
        error_message: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> MessageSend:
        """Advance one send and refresh the parent message's counters."""
        one_of(status, SEND_STATUSES, "status")
        send = self.db.get(MessageSend, send_id)
        if send is None:
            raise NotFound("Message send", send_id)
        if user_id is not None and send.message.user_id != user_id:
            raise AccessDenied("Access denied to this message")

        send.status = status
        timestamp_field = SEND_STATUS_TIMESTAMPS.get(status)
        if timestamp_field:
            setattr(send, timestamp_field, utcnow())
        if status == "failed":
            send.error_message = error_message
        self.db.flush()

        message = send.message
        message.successful_sends = self._count_sends(message.id, SUCCESSFUL_SEND_STATUSES)
        message.failed_sends = self._count_sends(message.id, ("failed",))
        self.db.commit()
        self.db.refresh(send)
        return send

    def get_sends(self, id: str, user_id: str) -> List[Tuple[MessageSend, Optional[Recipient]]]:
        self.get_owned(id, user_id)
        return (
            self.db.query(MessageSend, Recipient)
            .outerjoin(Recipient, MessageSend.recipient_id == Recipient.id)
            .filter(MessageSend.message_id == id)
            .order_by(MessageSend.created_at.desc())
            .all()
        )

    def get_by_event(self, event_id: str, user_id: str) -> List[Message]:
        self._check_event(event_id, user_id)
        return (
            self.db.query(Message)
            .filter(Message.event_id == event_id, Message.user_id == user_id)
            .order_by(Message.created_at.desc())
            .all()
        )

    def search(self, user_id: str, term: str, limit: int = 20, offset: int = 0) -> List[Message]:
        """Match the term on subject, content or the linked event's title."""
        if not term or not term.strip():
            raise ValidationError("Search term is required", field="q")
        return (
            self.db.query(Message)
            .outerjoin(Event, Message.event_id == Event.id)
            .filter(
                Message.user_id == user_id,
                Message.subject.icontains(term, autoescape=True)
                | Message.content.icontains(term, autoescape=True)
                | Event.title.icontains(term, autoescape=True),
            )
            .order_by(Message.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def get_stats(self, user_id: str) -> Dict[str, int]:
        base_query = self.db.query(Message).filter(Message.user_id == user_id)

        stats = {"total": base_query.count()}
        for status in MESSAGE_STATUSES:
            stats[status] = base_query.filter(Message.status == status).count()

        totals = self.db.query(
            func.coalesce(func.sum(Message.total_recipients), 0),
            func.coalesce(func.sum(Message.successful_sends), 0),
            func.coalesce(func.sum(Message.failed_sends), 0),
        ).filter(Message.user_id == user_id).one()
        stats["total_recipients"], stats["successful_sends"], stats["failed_sends"] = (int(v) for v in totals)
        return stats

    def get_due_scheduled(self, now: Optional[datetime] = None) -> List[Message]:
        """Scheduled messages whose time has come, oldest first, across all users."""
        return (
            self.db.query(Message)
            .filter(
                Message.status == "scheduled",
                Message.scheduled_at <= (now or utcnow()),
            )
            .order_by(Message.scheduled_at.asc())
            .all()
        )

    def _check_event(self, event_id: str, user_id: str) -> None:
        event = self.db.get(Event, event_id)
        if event is None:
            raise NotFound("Event", event_id)
        if event.user_id != user_id:
            raise AccessDenied("Access denied to this event")

    def _count_sends(self, message_id: str, statuses: Sequence[str]) -> int:
        return self.db.query(func.count(MessageSend.id)).filter(
            MessageSend.message_id == message_id,
            MessageSend.status.in_(statuses),
        ).scalar()
