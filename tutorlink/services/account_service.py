# tutorlink/services/account_service.py
"""Admin approval of accounts and verification documents."""

import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Query, Session

from tutorlink import models
from tutorlink.crud import user as user_crud
from tutorlink.exceptions import NotFoundError, ValidationError
from tutorlink.services import notification_service

logger = logging.getLogger(__name__)


def _managed_user(db: Session, user_id: int) -> models.User:
    user = user_crud.get_user(db, user_id)
    if not user:
        raise NotFoundError("User not found")
    if user.is_admin:
        raise ValidationError("Admin accounts cannot be moderated")
    return user


def pending_users_query(db: Session) -> Query:
    return (
        db.query(models.User)
        .filter(
            models.User.is_approved.is_(False),
            models.User.is_active.is_(True),
            models.User.role != "admin",
        )
        .order_by(models.User.created_at.asc(), models.User.id.asc())
    )


def approve_user(db: Session, *, user_id: int, admin: models.User) -> Tuple[models.User, models.Notification]:
    user = _managed_user(db, user_id)
    user.is_approved = True
    user.is_active = True
    notification = notification_service.create_notification(
        db,
        recipient_id=user.id,
        sender_id=admin.id,
        type="account_approved",
        title="Account Approved",
        message="Your account has been approved. You can now use all TutorLink features.",
        related_id=user.id,
        related_model="User",
    )
    db.commit()
    db.refresh(user)
    logger.info("Admin %s approved user %s", admin.id, user.id)
    return user, notification


def reject_user(
    db: Session,
    *,
    user_id: int,
    admin: models.User,
    reason: Optional[str] = None,
) -> Tuple[models.User, models.Notification]:
    user = _managed_user(db, user_id)
    reason = (reason or "").strip() or None
    user.is_approved = False
    user.is_active = False

    message = "Your account application was not approved."
    if reason:
        message += f" Reason: {reason}"
    notification = notification_service.create_notification(
        db,
        recipient_id=user.id,
        sender_id=admin.id,
        type="account_rejected",
        title="Account Not Approved",
        message=message,
        related_id=user.id,
        related_model="User",
        metadata={"reason": reason},
    )
    db.commit()
    db.refresh(user)
    logger.info("Admin %s rejected user %s", admin.id, user.id)
    return user, notification


def verify_documents(
    db: Session,
    *,
    user_id: int,
    admin: models.User,
    approved: bool = True,
    document_type: str = "verification",
) -> Tuple[models.User, models.Notification]:
    user = _managed_user(db, user_id)
    user.documents_verified = bool(approved)

    if approved:
        type_, title, message = (
            "document_approved",
            "Document Approved",
            f"Your {document_type} document has been approved.",
        )
    else:
        type_, title, message = (
            "document_rejected",
            "Document Rejected",
            f"Your {document_type} document was rejected. Please upload a new one.",
        )
    notification = notification_service.create_notification(
        db,
        recipient_id=user.id,
        sender_id=admin.id,
        type=type_,
        title=title,
        message=message,
        related_id=user.id,
        related_model="User",
        metadata={"document_type": document_type, "approved": bool(approved)},
    )
    db.commit()
    db.refresh(user)
    logger.info("Admin %s set documents_verified=%s for user %s", admin.id, user.documents_verified, user.id)
    return user, notification
