"""
Recipient domain: the per-user contact directory.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError

from ..errors import DuplicateEmail, ValidationError
from ..models.recipient import Recipient
from ..schemas.recipient import RecipientCreate, RecipientPatch, RecipientUpdate
from ..types import utcnow
from .base import BaseService, commit_email

NULLABLE_FIELDS = {"phone", "company", "position", "notes"}

DUPLICATE_MESSAGE = "A recipient with this email already exists"


class RecipientService(BaseService):
    model = Recipient
    resource = "Recipient"
    sortable_columns = (
        "created_at",
        "updated_at",
        "email",
        "first_name",
        "last_name",
        "company",
    )

    def exists(self, user_id: str, email: str, exclude_id: Optional[str] = None) -> bool:
        query = self.db.query(Recipient.id).filter(
            Recipient.user_id == user_id,
            Recipient.email == email,
        )
        if exclude_id:
            query = query.filter(Recipient.id != exclude_id)
        return query.first() is not None

    def find_by_email(self, user_id: str, email: str) -> Optional[Recipient]:
        return self.db.query(Recipient).filter(
            Recipient.user_id == user_id,
            Recipient.email == email,
        ).first()

    def create(self, user_id: str, data: RecipientCreate) -> Recipient:
        if self.exists(user_id, data.email):
            raise DuplicateEmail(data.email, DUPLICATE_MESSAGE)

        recipient = Recipient(user_id=user_id)
        self._apply(recipient, data.model_dump())
        self.db.add(recipient)
        commit_email(self.db, data.email, DUPLICATE_MESSAGE)
        self.db.refresh(recipient)
        return recipient

    def bulk_create(self, user_id: str, items: Sequence[RecipientCreate]) -> Tuple[List[Recipient], int]:
        """Import many recipients in one transaction.

        Emails already stored for the user, and repeats within the batch,
        are skipped and counted. Any other failure rolls back the whole
        batch.
        """
        created: List[Recipient] = []
        seen = set()
        try:
            for item in items:
                if item.email in seen or self.exists(user_id, item.email):
                    continue
                seen.add(item.email)
                recipient = Recipient(user_id=user_id)
                self._apply(recipient, item.model_dump())
                self.db.add(recipient)
                try:
                    self.db.flush()
                except IntegrityError:
                    raise DuplicateEmail(item.email, DUPLICATE_MESSAGE)
                created.append(recipient)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        skipped = len(items) - len(created)
        self.logger.info("Recipients imported", user_id=user_id, created=len(created), skipped=skipped)
        return created, skipped

    def list(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 50,
        active: Optional[bool] = True,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Tuple[List[Recipient], int]:
        """One page of recipients; ``active=None`` includes inactive ones."""
        query = self.db.query(Recipient).filter(Recipient.user_id == user_id)
        if active is not None:
            query = query.filter(Recipient.is_active == active)
        query = self._ordered(query, sort_by, sort_order)
        return self._page(query, page, limit)

    def update(self, id: str, user_id: str, data: RecipientUpdate) -> Recipient:
        """Replace every mutable field from a complete DTO."""
        recipient = self.get_owned(id, user_id)
        values = data.model_dump()
        self._check_email_change(recipient, values["email"])
        self._apply(recipient, values)
        commit_email(self.db, recipient.email, DUPLICATE_MESSAGE)
        self.db.refresh(recipient)
        return recipient

    def patch(self, id: str, user_id: str, data: RecipientPatch) -> Recipient:
        recipient = self.get_owned(id, user_id)
        values = data.model_dump(exclude_unset=True)
        for key, value in values.items():
            if value is None and key not in NULLABLE_FIELDS:
                raise ValidationError(f"{key} cannot be null", field=key)
        if "email" in values:
            self._check_email_change(recipient, values["email"])
        self._apply(recipient, values)
        commit_email(self.db, recipient.email, DUPLICATE_MESSAGE)
        self.db.refresh(recipient)
        return recipient

    def delete(self, id: str, user_id: str) -> bool:
        recipient = self.get_owned(id, user_id)
        self.db.delete(recipient)
        self.db.commit()
        return True

    def opt_out(self, id: str, user_id: str) -> Recipient:
        recipient = self.get_owned(id, user_id)
        recipient.opt_out = True
        recipient.opt_out_date = utcnow()
        self.db.commit()
        self.db.refresh(recipient)
        self.logger.info("Recipient opted out", recipient_id=id, user_id=user_id)
        return recipient

    def opt_in(self, id: str, user_id: str) -> Recipient:
        recipient = self.get_owned(id, user_id)
        recipient.opt_out = False
        recipient.opt_out_date = None
        self.db.commit()
        self.db.refresh(recipient)
        return recipient

    def search(self, user_id: str, term: str, limit: int = 20, offset: int = 0) -> List[Recipient]:
        """Active recipients matching the term on name/email/company fields or an exact tag."""
        if not term or not term.strip():
            raise ValidationError("Search term is required", field="q")
        return (
            self.db.query(Recipient)
            .filter(
                Recipient.user_id == user_id,
                Recipient.is_active == True,  # noqa: E712
                or_(
                    Recipient.email.icontains(term, autoescape=True),
                    Recipient.first_name.icontains(term, autoescape=True),
                    Recipient.last_name.icontains(term, autoescape=True),
                    Recipient.company.icontains(term, autoescape=True),
                    Recipient.position.icontains(term, autoescape=True),
                    self._has_tag(Recipient.tags, term),
                ),
            )
            .order_by(Recipient.first_name, Recipient.last_name)
            .offset(offset)
            .limit(limit)
            .all()
        )

    def get_by_tags(self, user_id: str, tags: Sequence[str], limit: int = 50, offset: int = 0) -> List[Recipient]:
        """Active recipients carrying any of the given tags."""
        if not tags:
            raise ValidationError("At least one tag is required", field="tags")
        return (
            self.db.query(Recipient)
            .filter(
                Recipient.user_id == user_id,
                Recipient.is_active == True,  # noqa: E712
                or_(*[self._has_tag(Recipient.tags, tag) for tag in tags]),
            )
            .order_by(Recipient.first_name, Recipient.last_name)
            .offset(offset)
            .limit(limit)
            .all()
        )

    def get_all_tags(self, user_id: str) -> List[str]:
        rows = self.db.query(Recipient.tags).filter(
            Recipient.user_id == user_id,
            Recipient.is_active == True,  # noqa: E712
        ).all()
        return sorted({tag for (tags,) in rows for tag in (tags or [])})

    def get_recently_added(self, user_id: str, limit: int = 10) -> List[Recipient]:
        return (
            self.db.query(Recipient)
            .filter(Recipient.user_id == user_id, Recipient.is_active == True)  # noqa: E712
            .order_by(Recipient.created_at.desc())
            .limit(limit)
            .all()
        )

    def get_stats(self, user_id: str) -> Dict[str, int]:
        base_query = self.db.query(Recipient).filter(Recipient.user_id == user_id)
        return {
            "total": base_query.count(),
            "active": base_query.filter(Recipient.is_active == True).count(),  # noqa: E712
            "opted_out": base_query.filter(Recipient.opt_out == True).count(),  # noqa: E712
            "with_company": base_query.filter(
                and_(Recipient.company.isnot(None), Recipient.company != "")
            ).count(),
        }

    def _check_email_change(self, recipient: Recipient, email: str) -> None:
        if email != recipient.email and self.exists(recipient.user_id, email, exclude_id=recipient.id):
            raise DuplicateEmail(email, DUPLICATE_MESSAGE)

    @staticmethod
    def _apply(recipient: Recipient, values: Dict[str, Any]) -> None:
        for key, value in values.items():
            if key == "metadata":
                recipient.metadata_ = value or {}
            elif key == "tags":
                recipient.tags = list(value or [])
            elif key in ("first_name", "last_name"):
                setattr(recipient, key, value or "")
            else:
                setattr(recipient, key, value)
