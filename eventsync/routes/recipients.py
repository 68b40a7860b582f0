"""
Recipient routes for the per-user contact directory.
"""
from typing import List

from fastapi import APIRouter, Depends, Query, status

from ..auth import get_current_user
from ..deps import get_recipient_service
from ..models.recipient import Recipient
from ..models.user import User
from ..responses import deleted, paginated, success
from ..schemas.recipient import (
    RecipientBulkCreate,
    RecipientCreate,
    RecipientPatch,
    RecipientUpdate,
)
from ..services import RecipientService

router = APIRouter(prefix="/api/recipients", tags=["recipients"])


def recipient_to_dict(recipient: Recipient) -> dict:
    """Convert a Recipient model to a dictionary response."""
    return {
        "id": recipient.id,
        "email": recipient.email,
        "first_name": recipient.first_name,
        "last_name": recipient.last_name,
        "phone": recipient.phone,
        "company": recipient.company,
        "position": recipient.position,
        "tags": recipient.tags or [],
        "notes": recipient.notes,
        "is_active": recipient.is_active,
        "opt_out": recipient.opt_out,
        "opt_out_date": recipient.opt_out_date.isoformat() if recipient.opt_out_date else None,
        "metadata": recipient.metadata_ or {},
        "created_at": recipient.created_at.isoformat() if recipient.created_at else None,
        "updated_at": recipient.updated_at.isoformat() if recipient.updated_at else None,
    }


@router.get("")
def list_recipients(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    include_inactive: bool = False,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    current_user: User = Depends(get_current_user),
    recipients: RecipientService = Depends(get_recipient_service),
):
    """List recipients. Inactive ones are hidden unless asked for."""
    items, total = recipients.list(
        current_user.id,
        page=page,
        limit=limit,
        active=None if include_inactive else True,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return paginated([recipient_to_dict(r) for r in items], total, page, limit)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_recipient(
    data: RecipientCreate,
    current_user: User = Depends(get_current_user),
    recipients: RecipientService = Depends(get_recipient_service),
):
    recipient = recipients.create(current_user.id, data)
    return success(recipient_to_dict(recipient), "Recipient created")


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
def bulk_create_recipients(
    data: RecipientBulkCreate,
    current_user: User = Depends(get_current_user),
    recipients: RecipientService = Depends(get_recipient_service),
):
    """Import many recipients at once. Existing emails are skipped."""
    created, skipped = recipients.bulk_create(current_user.id, data.recipients)
    return success(
        [recipient_to_dict(r) for r in created],
        f"{len(created)} recipients imported",
        meta={"created": len(created), "skipped": skipped},
    )


@router.get("/search")
def search_recipients(
    q: str = "",
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    recipients: RecipientService = Depends(get_recipient_service),
):
    results = recipients.search(current_user.id, q, limit=limit, offset=offset)
    return success([recipient_to_dict(r) for r in results])


@router.get("/tags")
def list_tags(
    current_user: User = Depends(get_current_user),
    recipients: RecipientService = Depends(get_recipient_service),
):
    return success(recipients.get_all_tags(current_user.id))


@router.get("/by-tags")
def recipients_by_tags(
    tags: List[str] = Query(default=[]),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    recipients: RecipientService = Depends(get_recipient_service),
):
    """Recipients carrying any of the given tags (?tags=a&tags=b)."""
    results = recipients.get_by_tags(current_user.id, tags, limit=limit, offset=offset)
    return success([recipient_to_dict(r) for r in results])


@router.get("/recent")
def recent_recipients(
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    recipients: RecipientService = Depends(get_recipient_service),
):
    return success([recipient_to_dict(r) for r in recipients.get_recently_added(current_user.id, limit)])


@router.get("/stats")
def recipient_stats(
    current_user: User = Depends(get_current_user),
    recipients: RecipientService = Depends(get_recipient_service),
):
    return success(recipients.get_stats(current_user.id))


@router.get("/{recipient_id}")
def get_recipient(
    recipient_id: str,
    current_user: User = Depends(get_current_user),
    recipients: RecipientService = Depends(get_recipient_service),
):
    return success(recipient_to_dict(recipients.get_owned(recipient_id, current_user.id)))


@router.put("/{recipient_id}")
def update_recipient(
    recipient_id: str,
    data: RecipientUpdate,
    current_user: User = Depends(get_current_user),
    recipients: RecipientService = Depends(get_recipient_service),
):
    """Replace every mutable field of the recipient."""
    recipient = recipients.update(recipient_id, current_user.id, data)
    return success(recipient_to_dict(recipient), "Recipient updated")


@router.patch("/{recipient_id}")
def patch_recipient(
    recipient_id: str,
    data: RecipientPatch,
    current_user: User = Depends(get_current_user),
    recipients: RecipientService = Depends(get_recipient_service),
):
    recipient = recipients.patch(recipient_id, current_user.id, data)
    return success(recipient_to_dict(recipient), "Recipient updated")


@router.delete("/{recipient_id}")
def delete_recipient(
    recipient_id: str,
    current_user: User = Depends(get_current_user),
    recipients: RecipientService = Depends(get_recipient_service),
):
    """Delete a recipient. Past message sends keep the address they went to."""
    recipients.delete(recipient_id, current_user.id)
    return deleted("Recipient deleted")


@router.post("/{recipient_id}/opt-out")
def opt_out(
    recipient_id: str,
    current_user: User = Depends(get_current_user),
    recipients: RecipientService = Depends(get_recipient_service),
):
    return success(recipient_to_dict(recipients.opt_out(recipient_id, current_user.id)))


@router.post("/{recipient_id}/opt-in")
def opt_in(
    recipient_id: str,
    current_user: User = Depends(get_current_user),
    recipients: RecipientService = Depends(get_recipient_service),
):
    return success(recipient_to_dict(recipients.opt_in(recipient_id, current_user.id)))
