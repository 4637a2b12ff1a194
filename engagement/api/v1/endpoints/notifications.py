"""
Notification Endpoints Module

Read side of the notification feed written by the lifecycle services. Every
endpoint is scoped to the current user.
"""
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session
from engagement.db.session import get_db
from engagement.models.notification import NotificationRead
from engagement.core.exceptions import ValidationError
from engagement.core.principal import Principal
from engagement.schemas.notification import NotificationList, NotificationMark, UnreadCount
from engagement.schemas.project import SuccessResponse
from engagement.services import notifications as notification_service
from engagement.api import deps

router = APIRouter()


@router.get("", response_model=NotificationList)
def list_notifications(
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_principal),
):
    rows = notification_service.list_notifications(db, principal.user_id, limit=limit)
    return NotificationList(notifications=[NotificationRead.from_row(row) for row in rows])


@router.get("/unread-count", response_model=UnreadCount)
def unread_count(
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_principal),
):
    return UnreadCount(unread_count=notification_service.unread_count(db, principal.user_id))


@router.put("", response_model=SuccessResponse)
def mark_read(
    mark_in: NotificationMark,
    db: Session = Depends(get_db),
    principal: Principal = Depends(deps.get_principal),
):
    """
    Mark a single notification (``notification_id``) or all of them
    (``mark_all``) as read.
    """
    if not mark_in.mark_all and not mark_in.notification_id:
        raise ValidationError("notification_id or mark_all required")
    count = notification_service.mark_read(
        db, principal.user_id, notification_id=mark_in.notification_id, mark_all=mark_in.mark_all
    )
    return SuccessResponse(message=f"{count} notification(s) marked as read")
