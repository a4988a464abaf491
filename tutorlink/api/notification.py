from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tutorlink import models
from tutorlink.database import get_db
from tutorlink.exceptions import ValidationError
from tutorlink.models.notification import NOTIFICATION_TYPES
from tutorlink.schemas import LegacyMessage, NotificationResponse, envelope
from tutorlink.services import notification_service
from tutorlink.utils.security import get_current_user

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/my")
def get_my_notifications(
    unread_only: bool = Query(False),
    notification_type: Optional[str] = Query(None, alias="type"),
    limit: int = Query(50, ge=1, le=200),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if notification_type and notification_type not in NOTIFICATION_TYPES:
        raise ValidationError(f"Unknown notification type: {notification_type}")

    notifications = notification_service.list_user_notifications(
        db,
        user_id=current_user.id,
        unread_only=unread_only,
        notification_type=notification_type,
        limit=limit,
    )
    return envelope({
        "notifications": [NotificationResponse.from_model(n) for n in notifications],
        "unread_count": notification_service.get_unread_count(db, user_id=current_user.id),
    })


@router.get("/unread-count")
def get_unread_count(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return envelope({"count": notification_service.get_unread_count(db, user_id=current_user.id)})


@router.get("/legacy-messages")
def get_legacy_messages(
    limit: int = Query(50, ge=1, le=200),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Session notifications rendered in the older sender/receiver/content message shape."""
    messages = notification_service.list_legacy_messages(db, user_id=current_user.id, limit=limit)
    return envelope({"messages": [LegacyMessage(**m) for m in messages]})


@router.patch("/{notification_id}/read")
def mark_notification_read(
    notification_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    notification = notification_service.mark_notification_read(
        db,
        user_id=current_user.id,
        notification_id=notification_id,
    )
    return envelope(
        {"notification": NotificationResponse.from_model(notification)},
        "Notification marked as read",
    )


@router.patch("/read-all")
def mark_all_notifications_read(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    count = notification_service.mark_all_notifications_read(db, user_id=current_user.id)
    return envelope({"updated": count}, "All notifications marked as read")
