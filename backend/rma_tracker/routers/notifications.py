"""Admin notification endpoints."""
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..auth import PermissionChecker
from ..database import get_db
from ..models import User
from ..schemas import CountResponse, MessageResponse, NotificationResponse
from ..services.notifications import (
    count_unread_notifications,
    delete_notification,
    list_notifications,
    list_unread_notifications,
    mark_all_notifications_read,
    mark_notification_read,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])

manage_notifications = PermissionChecker("canManageNotifications")


@router.get("", response_model=list[NotificationResponse])
def get_notifications(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(manage_notifications),
    db: Session = Depends(get_db),
):
    return [
        NotificationResponse.model_validate(notification)
        for notification in list_notifications(db, limit=limit, offset=offset)
    ]


@router.get("/unread", response_model=list[NotificationResponse])
def get_unread_notifications(
    current_user: User = Depends(manage_notifications),
    db: Session = Depends(get_db),
):
    return [NotificationResponse.model_validate(notification) for notification in list_unread_notifications(db)]


@router.get("/unread/count", response_model=CountResponse)
def get_unread_count(
    current_user: User = Depends(manage_notifications),
    db: Session = Depends(get_db),
):
    return CountResponse(count=count_unread_notifications(db))


@router.patch("/read-all", response_model=MessageResponse)
def mark_all_read(
    current_user: User = Depends(manage_notifications),
    db: Session = Depends(get_db),
):
    updated = mark_all_notifications_read(db)
    return MessageResponse(message=f"Marked {updated} notifications as read")


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: str,
    current_user: User = Depends(manage_notifications),
    db: Session = Depends(get_db),
):
    return NotificationResponse.model_validate(mark_notification_read(db, notification_id))


@router.delete("/{notification_id}", status_code=204)
def remove_notification(
    notification_id: str,
    current_user: User = Depends(manage_notifications),
    db: Session = Depends(get_db),
):
    delete_notification(db, notification_id)
    return Response(status_code=204)
