# tutorlink/services/session_request_service.py
"""
Session request state machine.

pending -> accepted (spawns a direct Session)
pending -> rejected
Both outcomes are terminal.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from tutorlink import models
from tutorlink.crud import user as user_crud
from tutorlink.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from tutorlink.services import notification_service, session_service
from tutorlink.utils.clock import as_naive_utc, utcnow

logger = logging.getLogger(__name__)

REQUEST_FILTERS = ("pending", "accepted", "rejected", "all")


def _pending_request_exists(db: Session, student_id: int, mentor_id: int) -> bool:
    return db.query(models.SessionRequest.id).filter(
        models.SessionRequest.student_id == student_id,
        models.SessionRequest.mentor_id == mentor_id,
        models.SessionRequest.status == "pending",
    ).first() is not None


def create_request(
    db: Session,
    *,
    student: models.User,
    mentor_id: int,
    subject: str,
    duration: int,
    preferred_times: List[datetime],
    description: Optional[str] = None,
    proposed_price: Optional[float] = None,
) -> Tuple[models.SessionRequest, Optional[models.Notification]]:
    """Create a pending request and notify the mentor."""
    if mentor_id == student.id:
        raise ValidationError("Cannot request a session with yourself")
    if not isinstance(duration, int) or duration <= 0:
        raise ValidationError("Duration must be a positive number of minutes")
    if not preferred_times:
        raise ValidationError("At least one preferred time is required")

    mentor = user_crud.get_active_mentor(db, mentor_id)
    if not mentor:
        raise ValidationError("Mentor not found or not available")

    if _pending_request_exists(db, student.id, mentor_id):
        raise ConflictError("You already have a pending request with this mentor")

    request = models.SessionRequest(
        student_id=student.id,
        mentor_id=mentor_id,
        subject=subject,
        description=description,
        duration=duration,
        preferred_times=[as_naive_utc(t).isoformat() for t in preferred_times],
        proposed_price=proposed_price,
        status="pending",
    )
    db.add(request)
    try:
        db.flush()
    except IntegrityError:
        # Lost the race against a concurrent create for the same pair
        db.rollback()
        raise ConflictError("You already have a pending request with this mentor")

    notification = notification_service.create_notification(
        db,
        recipient_id=mentor_id,
        sender_id=student.id,
        type="session_request",
        title="New Session Request",
        message=f'{student.name} requested a {duration}-minute session on "{subject}".',
        related_id=request.id,
        related_model="SessionRequest",
        metadata={"subject": subject, "duration": duration},
    )
    db.commit()
    db.refresh(request)
    logger.info("Session request %s created (student=%s, mentor=%s)", request.id, student.id, mentor_id)
    return request, notification


def _claim_pending(db: Session, request_id: int, mentor_id: int, new_status: str, **values) -> models.SessionRequest:
    """
    Compare-and-swap ``pending -> new_status``.

    Only one writer can win; everyone else (and any missing, foreign or
    already-processed request) gets NotFoundError without side effects.
    """
    result = db.execute(
        update(models.SessionRequest)
        .where(
            models.SessionRequest.id == request_id,
            models.SessionRequest.mentor_id == mentor_id,
            models.SessionRequest.status == "pending",
        )
        .values(status=new_status, responded_at=utcnow(), updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise NotFoundError("Session request not found or already processed")
    request = db.query(models.SessionRequest).filter(models.SessionRequest.id == request_id).one()
    db.refresh(request)
    return request


def accept_request(
    db: Session,
    *,
    request_id: int,
    mentor: models.User,
    scheduled_date: datetime,
    meeting_link: Optional[str] = None,
) -> Tuple[models.SessionRequest, models.Session, Optional[models.Notification]]:
    """
    Accept a pending request and create its direct session.

    The status flip and the session insert commit together.
    """
    scheduled_at = as_naive_utc(scheduled_date)
    request = _claim_pending(db, request_id, mentor.id, "accepted", scheduled_date=scheduled_at)

    session = session_service.create_direct_session(
        db,
        request=request,
        scheduled_at=scheduled_at,
        meet_link=meeting_link,
    )
    notification = notification_service.create_notification(
        db,
        recipient_id=request.student_id,
        sender_id=mentor.id,
        type="session_approved",
        title="Session Request Approved",
        message=f'{mentor.name} has approved your session request for "{request.subject}".',
        related_id=session.id,
        related_model="Session",
        metadata={
            "session_subject": request.subject,
            "scheduled_at": scheduled_at.isoformat(),
            "request_id": request.id,
            "status": "approved",
        },
    )
    db.commit()
    db.refresh(request)
    db.refresh(session)
    logger.info("Session request %s accepted; session %s created", request.id, session.id)
    return request, session, notification


def reject_request(
    db: Session,
    *,
    request_id: int,
    mentor: models.User,
    reason: Optional[str] = None,
) -> Tuple[models.SessionRequest, Optional[models.Notification]]:
    reason = reason.strip() if reason else None
    request = _claim_pending(db, request_id, mentor.id, "rejected", response_message=reason)

    reason_text = f" Reason: {reason}" if reason else ""
    notification = notification_service.create_notification(
        db,
        recipient_id=request.student_id,
        sender_id=mentor.id,
        type="session_rejected",
        title="Session Request Rejected",
        message=f'{mentor.name} has rejected your session request for "{request.subject}".{reason_text}',
        related_id=request.id,
        related_model="SessionRequest",
        metadata={"session_subject": request.subject, "status": "rejected", "reason": reason},
    )
    db.commit()
    db.refresh(request)
    logger.info("Session request %s rejected", request.id)
    return request, notification


# ======================
# QUERIES
# ======================

def student_requests_query(db: Session, student_id: int) -> Query:
    return (
        db.query(models.SessionRequest)
        .filter(models.SessionRequest.student_id == student_id)
        .order_by(models.SessionRequest.created_at.desc(), models.SessionRequest.id.desc())
    )


def mentor_requests_query(db: Session, mentor_id: int, status: str = "pending") -> Query:
    if status not in REQUEST_FILTERS:
        raise ValidationError(f"Status must be one of: {', '.join(REQUEST_FILTERS)}")
    query = db.query(models.SessionRequest).filter(models.SessionRequest.mentor_id == mentor_id)
    if status != "all":
        query = query.filter(models.SessionRequest.status == status)
    return query.order_by(models.SessionRequest.created_at.desc(), models.SessionRequest.id.desc())


def get_request_for_user(db: Session, request_id: int, user: models.User) -> models.SessionRequest:
    request = db.query(models.SessionRequest).filter(models.SessionRequest.id == request_id).first()
    if not request:
        raise NotFoundError("Session request not found")
    if user.id not in (request.student_id, request.mentor_id) and not user.is_admin:
        raise AuthorizationError("Access denied. You are not involved in this session request.")
    return request
