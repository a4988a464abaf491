# tutorlink/services/message_service.py
"""Direct user-to-user messages. Session announcements live in notifications."""

import logging
from typing import Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from tutorlink import models
from tutorlink.exceptions import NotFoundError, ValidationError
from tutorlink.services import notification_service
from tutorlink.utils.clock import utcnow

logger = logging.getLogger(__name__)


def send_message(
    db: Session,
    *,
    sender: models.User,
    receiver_id: int,
    content: str,
    session_id: Optional[int] = None,
) -> Tuple[models.Message, models.Notification]:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Message content cannot be empty")
    if len(content) > 2000:
        raise ValidationError("Message must be less than 2000 characters")
    if receiver_id == sender.id:
        raise ValidationError("Cannot send a message to yourself")

    receiver = db.query(models.User).filter(
        models.User.id == receiver_id,
        models.User.is_active.is_(True),
    ).first()
    if not receiver:
        raise NotFoundError("Recipient not found")

    if session_id is not None:
        exists = db.query(models.Session.id).filter(models.Session.id == session_id).first()
        if not exists:
            raise NotFoundError("Session not found")

    message = models.Message(
        sender_id=sender.id,
        receiver_id=receiver.id,
        conversation_id=models.Message.conversation_key(sender.id, receiver.id),
        content=content,
        session_id=session_id,
    )
    db.add(message)
    db.flush()

    preview = content if len(content) <= 100 else content[:97] + "..."
    notification = notification_service.create_notification(
        db,
        recipient_id=receiver.id,
        sender_id=sender.id,
        type="message_received",
        title=f"New message from {sender.name}",
        message=preview,
        related_id=message.id,
        related_model="Message",
        metadata={"conversation_id": message.conversation_id},
    )
    db.commit()
    db.refresh(message)
    logger.info("Message %s sent (%s -> %s)", message.id, sender.id, receiver.id)
    return message, notification


def conversation_query(db: Session, *, user: models.User, other_user_id: int) -> Query:
    key = models.Message.conversation_key(user.id, other_user_id)
    return (
        db.query(models.Message)
        .filter(models.Message.conversation_id == key)
        .order_by(models.Message.created_at.asc(), models.Message.id.asc())
    )


def conversations(db: Session, *, user: models.User):
    """Latest message per conversation the user is part of, newest first."""
    latest = (
        db.query(func.max(models.Message.id))
        .filter(or_(models.Message.sender_id == user.id, models.Message.receiver_id == user.id))
        .group_by(models.Message.conversation_id)
    )
    return (
        db.query(models.Message)
        .filter(models.Message.id.in_(latest))
        .order_by(models.Message.id.desc())
        .all()
    )


def mark_message_read(db: Session, *, message_id: int, user: models.User) -> models.Message:
    message = db.query(models.Message).filter(
        models.Message.id == message_id,
        models.Message.receiver_id == user.id,
    ).first()
    if not message:
        raise NotFoundError("Message not found")
    if not message.is_read:
        message.is_read = True
        message.read_at = utcnow()
        db.commit()
        db.refresh(message)
    return message


def unread_count(db: Session, *, user: models.User) -> int:
    return db.query(models.Message).filter(
        models.Message.receiver_id == user.id,
        models.Message.is_read.is_(False),
    ).count()
