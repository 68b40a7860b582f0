"""
Shared plumbing for the domain services: ownership lookups, pagination and
whitelisted sorting.
"""
from datetime import datetime
from typing import Any, Iterable, List, Optional, Tuple, Type

from sqlalchemy import cast, func, select
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from ..errors import AccessDenied, DuplicateEmail, NotFound, ValidationError
from ..logging_config import StructuredLogger
from ..types import as_utc, utcnow

SORT_ORDERS = ("asc", "desc")
MAX_PAGE_SIZE = 100


class BaseService:
    """A service wraps one aggregate root and works on one session."""

    model: Type[Any]
    resource: str = "Resource"
    sortable_columns: Tuple[str, ...] = ("created_at",)

    def __init__(self, db: Session, logger: StructuredLogger):
        self.db = db
        self.logger = logger

    def get_by_id(self, id: str) -> Any:
        """Return the row or raise NotFound. No ownership check."""
        obj = self.db.get(self.model, id)
        if obj is None:
            raise NotFound(self.resource, id)
        return obj

    def get_owned(self, id: str, user_id: str) -> Any:
        """Return the row when it belongs to ``user_id``.

        NotFound when the id does not exist, AccessDenied when another
        user owns it.
        """
        obj = self.get_by_id(id)
        if obj.user_id != user_id:
            raise AccessDenied(f"Access denied to this {self.resource.lower()}")
        return obj

    def _ordered(self, query: Query, sort_by: str, sort_order: str) -> Query:
        if sort_by not in self.sortable_columns:
            raise ValidationError(
                f"Cannot sort by '{sort_by}'",
                field="sort_by",
                allowed=list(self.sortable_columns),
            )
        order = sort_order.lower()
        if order not in SORT_ORDERS:
            raise ValidationError("sort_order must be 'asc' or 'desc'", field="sort_order")
        column = getattr(self.model, sort_by)
        return query.order_by(column.asc() if order == "asc" else column.desc())

    def _has_tag(self, column, tag: str):
        """Exact membership of ``tag`` in a JSON list column."""
        if self.db.get_bind().dialect.name == "postgresql":
            return cast(column, JSONB).contains([tag])
        elements = func.json_each(column).table_valued("value")
        return select(elements.c.value).where(elements.c.value == tag).exists()

    @staticmethod
    def _page(query: Query, page: int, limit: int) -> Tuple[List[Any], int]:
        if page < 1:
            raise ValidationError("page must be at least 1", field="page")
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")
        total = query.order_by(None).count()
        items = query.offset((page - 1) * limit).limit(limit).all()
        return items, total


def require_future(value: Optional[datetime], field: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Normalize to UTC and reject anything not strictly after now."""
    if value is None:
        return None
    value = as_utc(value)
    if value <= (now or utcnow()):
        raise ValidationError(f"{field} must be in the future", field=field)
    return value


def one_of(value: str, allowed: Iterable[str], field: str) -> str:
    allowed = tuple(allowed)
    if value not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(allowed)}", field=field)
    return value


def commit_email(db: Session, email: str, message: Optional[str] = None) -> None:
    """Commit a write guarded by a unique email constraint.

    The pre-check in each service can race a concurrent insert; the
    constraint is the final word, and its violation is a DuplicateEmail.
    """
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateEmail(email, message)
