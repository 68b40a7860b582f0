"""
Event domain: owned events and their participant lists.
"""
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select, update

from ..errors import NotFound, ValidationError
from ..models.event import (
    COUNTED_PARTICIPANT_STATUSES,
    EVENT_STATUSES,
    PARTICIPANT_STATUSES,
    Event,
    EventParticipant,
)
from ..models.recipient import Recipient
from ..schemas.event import EventCreate, EventPatch, EventUpdate
from ..types import as_utc, utcnow
from .base import BaseService, one_of, require_future

# Columns that may be cleared to NULL by a patch
NULLABLE_FIELDS = {"description", "location", "max_participants", "registration_deadline"}


class EventService(BaseService):
    model = Event
    resource = "Event"
    sortable_columns = (
        "created_at",
        "updated_at",
        "event_date",
        "title",
        "status",
        "current_participants",
    )

    # ------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------

    def create(self, user_id: str, data: EventCreate) -> Event:
        values = data.model_dump()
        self._validate(values)
        values["event_date"] = require_future(values["event_date"], "event_date")

        event = Event(user_id=user_id, current_participants=0)
        self._apply(event, values)
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)

        self.logger.info("Event created", event_id=event.id, user_id=user_id)
        return event

    def list(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Tuple[List[Event], int]:
        """One page of the user's events plus the total matching count."""
        query = self.db.query(Event).filter(Event.user_id == user_id)
        if status:
            query = query.filter(Event.status == one_of(status, EVENT_STATUSES, "status"))
        query = self._ordered(query, sort_by, sort_order)
        return self._page(query, page, limit)

    def update(self, id: str, user_id: str, data: EventUpdate) -> Event:
        """Replace every mutable field from a complete DTO."""
        event = self.get_owned(id, user_id)
        values = data.model_dump()
        self._validate(values)
        self._check_date_change(event, values["event_date"])

        self._apply(event, values)
        self.db.commit()
        self.db.refresh(event)
        return event

    def patch(self, id: str, user_id: str, data: EventPatch) -> Event:
        """Change only the fields set on the DTO."""
        event = self.get_owned(id, user_id)
        values = data.model_dump(exclude_unset=True)
        for key, value in values.items():
            if value is None and key not in NULLABLE_FIELDS:
                raise ValidationError(f"{key} cannot be null", field=key)
        self._validate(values)
        if "event_date" in values:
            self._check_date_change(event, values["event_date"])

        self._apply(event, values)
        self.db.commit()
        self.db.refresh(event)
        return event

    def delete(self, id: str, user_id: str) -> bool:
        """Delete an owned event; its participant rows go with it."""
        event = self.get_owned(id, user_id)
        self.db.delete(event)
        self.db.commit()
        self.logger.info("Event deleted", event_id=id, user_id=user_id)
        return True

    # ------------------------------------------------------------
    # PARTICIPANTS
    # ------------------------------------------------------------

    def add_participant(
        self,
        event_id: str,
        recipient_id: str,
        user_id: str,
        status: str = "invited",
        notes: Optional[str] = None,
    ) -> EventParticipant:
        """Invite a recipient, or update the existing invitation.

        Re-adding a recipient changes its status and re-stamps invited_at.
        """
        event = self.get_owned(event_id, user_id)
        one_of(status, PARTICIPANT_STATUSES, "status")
        recipient = self.db.get(Recipient, recipient_id)
        if recipient is None or recipient.user_id != event.user_id:
            raise NotFound("Recipient", recipient_id)

        now = utcnow()
        values = {
            "event_id": event_id,
            "recipient_id": recipient_id,
            "status": status,
            "invited_at": now,
            "responded_at": now if status in ("confirmed", "declined") else None,
            "attended_at": now if status == "attended" else None,
            "notes": notes,
        }
        self._upsert_participant(values)
        self._recount(event_id)
        self.db.commit()

        participant = (
            self.db.query(EventParticipant)
            .filter(
                EventParticipant.event_id == event_id,
                EventParticipant.recipient_id == recipient_id,
            )
            .populate_existing()
            .one()
        )
        self.db.refresh(event)
        self.logger.info(
            "Participant saved",
            event_id=event_id,
            recipient_id=recipient_id,
            status=status,
            current_participants=event.current_participants,
        )
        return participant

    def remove_participant(self, event_id: str, recipient_id: str, user_id: str) -> bool:
        """Remove a recipient from the event; False when it was not invited."""
        self.get_owned(event_id, user_id)
        removed = (
            self.db.query(EventParticipant)
            .filter(
                EventParticipant.event_id == event_id,
                EventParticipant.recipient_id == recipient_id,
            )
            .delete(synchronize_session="fetch")
        )
        self._recount(event_id)
        self.db.commit()
        return removed > 0

    def get_participants(self, event_id: str, user_id: str) -> List[Tuple[EventParticipant, Recipient]]:
        """Participants joined with their recipient, newest invitation first."""
        self.get_owned(event_id, user_id)
        return (
            self.db.query(EventParticipant, Recipient)
            .join(Recipient, EventParticipant.recipient_id == Recipient.id)
            .filter(EventParticipant.event_id == event_id)
            .order_by(EventParticipant.invited_at.desc())
            .all()
        )

    # ------------------------------------------------------------
    # QUERIES
    # ------------------------------------------------------------

    def search(self, user_id: str, term: str, limit: int = 20, offset: int = 0) -> List[Event]:
        """Case-insensitive match on title, description or location, or an exact tag."""
        if not term or not term.strip():
            raise ValidationError("Search term is required", field="q")
        return (
            self.db.query(Event)
            .filter(
                Event.user_id == user_id,
                or_(
                    Event.title.icontains(term, autoescape=True),
                    Event.description.icontains(term, autoescape=True),
                    Event.location.icontains(term, autoescape=True),
                    self._has_tag(Event.tags, term),
                ),
            )
            .order_by(Event.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def get_upcoming(self, user_id: str, limit: int = 10) -> List[Event]:
        """Active events still ahead, soonest first."""
        return (
            self.db.query(Event)
            .filter(
                Event.user_id == user_id,
                Event.event_date > utcnow(),
                Event.status == "active",
            )
            .order_by(Event.event_date.asc())
            .limit(limit)
            .all()
        )

    def get_stats(self, user_id: str) -> Dict[str, int]:
        base_query = self.db.query(Event).filter(Event.user_id == user_id)

        stats = {"total": base_query.count()}
        for status in EVENT_STATUSES:
            stats[status] = base_query.filter(Event.status == status).count()
        stats["upcoming"] = base_query.filter(Event.event_date > utcnow()).count()
        stats["total_participants"] = self.db.query(
            func.coalesce(func.sum(Event.current_participants), 0)
        ).filter(Event.user_id == user_id).scalar()
        return stats

    # ------------------------------------------------------------
    # INTERNALS
    # ------------------------------------------------------------

    @staticmethod
    def _validate(values: Dict[str, Any]) -> None:
        title = values.get("title")
        if title is not None and not 3 <= len(title.strip()) <= 255:
            raise ValidationError("title must be between 3 and 255 characters", field="title")
        if values.get("status") is not None:
            one_of(values["status"], EVENT_STATUSES, "status")
        max_participants = values.get("max_participants")
        if max_participants is not None and max_participants < 1:
            raise ValidationError("max_participants must be at least 1", field="max_participants")

    @staticmethod
    def _check_date_change(event: Event, event_date) -> None:
        # An unchanged date may already be in the past (e.g. closing a finished event)
        if as_utc(event_date) != event.event_date:
            require_future(event_date, "event_date")

    @staticmethod
    def _apply(event: Event, values: Dict[str, Any]) -> None:
        for key, value in values.items():
            if key == "metadata":
                event.metadata_ = value or {}
            elif key == "tags":
                event.tags = list(value or [])
            elif key in ("event_date", "registration_deadline") and value is not None:
                setattr(event, key, as_utc(value))
            else:
                setattr(event, key, value)

    def _upsert_participant(self, values: Dict[str, Any]) -> None:
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            self._merge_participant(values)
            return

        stmt = insert(EventParticipant).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["event_id", "recipient_id"],
            set_={
                "status": stmt.excluded.status,
                "invited_at": stmt.excluded.invited_at,
                "responded_at": func.coalesce(stmt.excluded.responded_at, EventParticipant.responded_at),
                "attended_at": func.coalesce(stmt.excluded.attended_at, EventParticipant.attended_at),
                "notes": func.coalesce(stmt.excluded.notes, EventParticipant.notes),
            },
        )
        self.db.execute(stmt)

    def _merge_participant(self, values: Dict[str, Any]) -> None:
        participant = (
            self.db.query(EventParticipant)
            .filter(
                EventParticipant.event_id == values["event_id"],
                EventParticipant.recipient_id == values["recipient_id"],
            )
            .first()
        )
        if participant is None:
            self.db.add(EventParticipant(**values))
        else:
            participant.status = values["status"]
            participant.invited_at = values["invited_at"]
            for key in ("responded_at", "attended_at", "notes"):
                if values[key] is not None:
                    setattr(participant, key, values[key])
        self.db.flush()

    def _recount(self, event_id: str) -> None:
        """Recompute current_participants from the participant rows."""
        self.db.flush()
        counted = (
            select(func.count(EventParticipant.id))
            .where(
                EventParticipant.event_id == event_id,
                EventParticipant.status.in_(COUNTED_PARTICIPANT_STATUSES),
            )
            .scalar_subquery()
        )
        self.db.execute(
            update(Event)
            .where(Event.id == event_id)
            .values(current_participants=counted)
            .execution_options(synchronize_session=False)
        )
