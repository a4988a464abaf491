from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from tutorlink import models
from tutorlink.exceptions import NotFoundError, ValidationError
from tutorlink.models.notification import NOTIFICATION_TYPES, RELATED_MODELS, Notification
from tutorlink.utils.email import is_email_enabled, send_email

logger = logging.getLogger(__name__)


EMAIL_SUBJECT_BY_TYPE = {
    "session_request": "New session request on TutorLink",
    "session_approved": "Your session request was accepted on TutorLink",
    "session_rejected": "Session request update on TutorLink",
    "session_notification": "A new session is open on TutorLink",
    "session_confirmation": "Session registration confirmed on TutorLink",
    "session_joined": "A student joined your session on TutorLink",
    "session_completed": "Session marked completed on TutorLink",
    "session_cancelled": "Session cancelled on TutorLink",
    "review_received": "You received a new review on TutorLink",
    "account_approved": "Your TutorLink account was approved",
    "account_rejected": "Your TutorLink account application",
}

# Legacy message types used by older dashboards, keyed by notification type
LEGACY_MESSAGE_TYPES = {
    "session_notification": "session_notification",
    "session_confirmation": "session_confirmation",
    "session_joined": "mentor_notification",
    "session_cancelled": "session_cancellation",
}


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def list_user_notifications(
    db: Session,
    *,
    user_id: int,
    unread_only: bool = False,
    notification_type: Optional[str] = None,
    limit: int = 50,
) -> List[Notification]:
    query = db.query(Notification).filter(Notification.recipient_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    if notification_type:
        query = query.filter(Notification.type == notification_type)
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def mark_notification_read(
    db: Session,
    *,
    user_id: int,
    notification_id: int,
) -> Notification:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.recipient_id == user_id,
    ).first()
    if not notification:
        raise NotFoundError("Notification not found")
    notification.is_read = True
    db.commit()
    return notification


def mark_all_notifications_read(db: Session, *, user_id: int) -> int:
    updated = db.query(Notification).filter(
        Notification.recipient_id == user_id,
        Notification.is_read.is_(False),
    ).update({"is_read": True}, synchronize_session=False)
    db.commit()
    return int(updated)


def get_unread_count(db: Session, *, user_id: int) -> int:
    return db.query(Notification).filter(
        Notification.recipient_id == user_id,
        Notification.is_read.is_(False),
    ).count()


def build_notification(
    *,
    recipient_id: int,
    sender_id: Optional[int],
    type: str,
    title: str,
    message: str,
    related_id: Optional[int] = None,
    related_model: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Notification:
    """Validate and construct an unsaved notification row."""
    if type not in NOTIFICATION_TYPES:
        raise ValidationError(f"Unknown notification type: {type}")
    if related_model is not None and related_model not in RELATED_MODELS:
        raise ValidationError(f"Unknown related model: {related_model}")
    return Notification(
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=type,
        title=_clip(title, 200),
        message=_clip(message, 500),
        related_id=related_id,
        related_model=related_model,
        payload=metadata or {},
    )


def create_notification(db: Session, **fields) -> Notification:
    notification = build_notification(**fields)
    db.add(notification)
    db.flush()
    return notification


# ======================
# LEGACY MESSAGE ADAPTER
# ======================

def _render_legacy_content(notification: Notification) -> str:
    meta = notification.payload or {}
    if notification.type == "session_notification":
        description = meta.get("description")
        lines = [
            "New Session Available!",
            "",
            f"{meta.get('mentor_name', 'Your mentor')} has scheduled a new session:",
            "",
            meta.get("session_title", ""),
            f"Date: {meta.get('session_date', '')}",
            f"Duration: {meta.get('duration', '')} minutes",
            "",
        ]
        if description:
            lines += [f"Description: {description}", ""]
        lines += [f"Meet Link: {meta.get('meet_link', '')}", "", "Click here to join this session!"]
        return "\n".join(lines)
    return f"{notification.title}\n\n{notification.message}"


def to_legacy_message(notification: Notification) -> Dict[str, Any]:
    """Render a notification in the sender/receiver/content message shape."""
    return {
        "id": notification.id,
        "sender": notification.sender_id,
        "receiver": notification.recipient_id,
        "content": _render_legacy_content(notification),
        "message_type": LEGACY_MESSAGE_TYPES.get(notification.type, "system"),
        "session_id": notification.related_id if notification.related_model == "Session" else None,
        "is_read": notification.is_read,
        "sent_at": notification.created_at,
    }


def list_legacy_messages(db: Session, *, user_id: int, limit: int = 50) -> List[Dict[str, Any]]:
    notifications = (
        db.query(Notification)
        .filter(
            Notification.recipient_id == user_id,
            Notification.type.in_(tuple(LEGACY_MESSAGE_TYPES)),
        )
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )
    return [to_legacy_message(n) for n in notifications]


# ======================
# EMAIL
# ======================

def _render_email(recipient: models.User, notification: Notification) -> Tuple[str, str]:
    subject = EMAIL_SUBJECT_BY_TYPE.get(notification.type, "New notification from TutorLink")
    greeting = (recipient.name or "").strip() or "there"
    body = (
        f"Hi {greeting},\n\n"
        f"{notification.title}\n"
        f"{notification.message}\n\n"
        "Open TutorLink to view details."
    )
    return subject, body


def _send_notification_email(to_email: str, subject: str, body_text: str, *, notification_id: Optional[int], recipient_id: Optional[int]) -> None:
    if not send_email(to_email=to_email, subject=subject, body_text=body_text):
        logger.info("Email for notification %s (user %s) was not delivered", notification_id, recipient_id)


def dispatch_email_for_notification(db: Session, notification: Optional[Notification]) -> bool:
    """
    Mail a committed notification to its recipient on a daemon thread.

    Returns True when a send was started. Never raises; the calling request
    has already succeeded.
    """
    if notification is None or not is_email_enabled():
        return False

    try:
        recipient = db.get(models.User, notification.recipient_id)
        if recipient is None or not recipient.email:
            return False
        subject, body = _render_email(recipient, notification)
        threading.Thread(
            target=_send_notification_email,
            args=(recipient.email, subject, body),
            kwargs={"notification_id": notification.id, "recipient_id": recipient.id},
            name=f"notification-email-{notification.id}",
            daemon=True,
        ).start()
    except Exception:
        logger.exception("Could not dispatch email for notification %s", notification.id)
        return False
    return True


def dispatch_emails(db: Session, notifications: List[Optional[Notification]]) -> None:
    for notification in notifications:
        dispatch_email_for_notification(db, notification)
