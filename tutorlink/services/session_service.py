# tutorlink/services/session_service.py
"""
Session store and join protocol.

Every session carries a participant roster plus a capacity. Direct sessions
(spawned from an accepted request) have capacity 1 and start with their
student attached; open sessions are published by a mentor with an empty
roster and are filled through ``join_session``.

    scheduled -> active -> completed
    scheduled -> completed
    scheduled | active -> cancelled
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session as DbSession

from tutorlink import models
from tutorlink.exceptions import (
    AuthorizationError,
    CapacityError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from tutorlink.models.session import OPEN_STATUSES, SESSION_STATUSES, TERMINAL_STATUSES
from tutorlink.services import fanout_service, notification_service
from tutorlink.utils.clock import parse_iso, utcnow

logger = logging.getLogger(__name__)


def _positive_int(value, field: str) -> int:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a positive integer")
    if number <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return number


def get_session(db: DbSession, session_id: int) -> models.Session:
    session = db.query(models.Session).filter(models.Session.id == session_id).first()
    if not session:
        raise NotFoundError("Session not found")
    return session


def get_session_for_user(db: DbSession, session_id: int, user: models.User) -> models.Session:
    session = get_session(db, session_id)
    if not session.is_participant(user.id) and not user.is_admin:
        raise AuthorizationError("Access denied")
    return session


# ======================
# CREATION
# ======================

def create_direct_session(
    db: DbSession,
    *,
    request: models.SessionRequest,
    scheduled_at: datetime,
    meet_link: Optional[str] = None,
) -> models.Session:
    """One-to-one session for an accepted request; caller commits."""
    session = models.Session(
        title=request.subject,
        description=request.description,
        mentor_id=request.mentor_id,
        request_id=request.id,
        scheduled_at=scheduled_at,
        duration=request.duration,
        meet_link=meet_link,
        status="scheduled",
        capacity=1,
        participant_count=1,
        materials=[],
    )
    session.participants.append(models.SessionParticipant(user_id=request.student_id))
    db.add(session)
    db.flush()
    return session


def create_open_session(
    db: DbSession,
    *,
    mentor: models.User,
    title: Optional[str],
    date: Optional[str],
    time: Optional[str],
    duration,
    meet_link: Optional[str],
    capacity=None,
    description: Optional[str] = None,
    notes: Optional[str] = None,
    materials: Optional[List[str]] = None,
    background_tasks=None,
) -> Tuple[models.Session, dict]:
    """
    Publish an open session with an empty roster, then fan out
    ``session_notification`` records to the eligible students.
    """
    title = (title or "").strip()
    meet_link = (meet_link or "").strip()
    if not title or not date or not time or not duration or not meet_link:
        raise ValidationError("Title, date, time, duration, and meet link are required")

    duration = _positive_int(duration, "Duration")
    capacity = 1 if capacity is None else _positive_int(capacity, "Capacity")

    try:
        scheduled_at = parse_iso(f"{date.strip()}T{time.strip()}")
    except ValueError:
        raise ValidationError("Invalid date or time. Use YYYY-MM-DD and HH:MM")

    session = models.Session(
        title=title,
        description=(description or "").strip() or None,
        mentor_id=mentor.id,
        scheduled_at=scheduled_at,
        duration=duration,
        meet_link=meet_link,
        status="scheduled",
        capacity=capacity,
        participant_count=0,
        notes=(notes or "").strip() or None,
        materials=[m.strip() for m in materials or [] if m and m.strip()],
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info(
        "Open session %s created by mentor %s (capacity=%s, at=%s)",
        session.id, mentor.id, capacity, scheduled_at.isoformat(),
    )

    summary = fanout_service.dispatch_open_session_fan_out(
        db,
        session=session,
        mentor=mentor,
        background_tasks=background_tasks,
    )
    return session, summary


# ======================
# JOIN
# ======================

def join_session(
    db: DbSession,
    *,
    session_id: int,
    user: models.User,
    now: Optional[datetime] = None,
) -> Tuple[models.Session, bool, List[models.Notification]]:
    """
    Attach ``user`` to the session roster.

    Returns ``(session, joined, notifications)``; ``joined`` is False when
    the user was already on the roster (idempotent success).
    """
    now = now or utcnow()
    session = get_session(db, session_id)

    if session.status == "completed":
        raise InvalidStateError("Session has already been completed")
    if session.status == "cancelled":
        raise InvalidStateError("Session has been cancelled")
    if session.scheduled_at < now:
        raise InvalidStateError("Session time has passed")

    if session.is_participant(user.id):
        return session, False, []
    if not user.is_student:
        raise AuthorizationError("Only students can join sessions")

    # Seat claim: the capacity check and the increment are one statement
    result = db.execute(
        update(models.Session)
        .where(
            models.Session.id == session.id,
            models.Session.status.in_(OPEN_STATUSES),
            models.Session.participant_count < models.Session.capacity,
        )
        .values(
            participant_count=models.Session.participant_count + 1,
            status="active",
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        db.refresh(session)
        if session.status in TERMINAL_STATUSES:
            raise InvalidStateError(f"Session has been {session.status}")
        raise CapacityError("Session is full")

    db.add(models.SessionParticipant(session_id=session.id, user_id=user.id, joined_at=now))
    try:
        db.flush()
    except IntegrityError:
        # Concurrent duplicate join by the same user; the seat claim rolls back too
        db.rollback()
        db.refresh(session)
        return session, False, []

    db.refresh(session)
    when = session.scheduled_at.strftime("%Y-%m-%d %H:%M")
    seats = f"{session.participant_count}/{session.capacity}" if session.is_group else str(session.participant_count)
    notifications = [
        notification_service.create_notification(
            db,
            recipient_id=user.id,
            sender_id=session.mentor_id,
            type="session_confirmation",
            title="Session Registration Confirmed",
            message=(
                f'You have successfully registered for "{session.title}" on {when} UTC '
                f"({session.duration} minutes). Meet link: {session.meet_link or 'TBA'}"
            ),
            related_id=session.id,
            related_model="Session",
            metadata={"session_title": session.title, "session_date": session.scheduled_at.isoformat()},
        ),
        notification_service.create_notification(
            db,
            recipient_id=session.mentor_id,
            sender_id=user.id,
            type="session_joined",
            title="New Student Joined",
            message=f'{user.name} has joined your session "{session.title}" on {when} UTC. Total participants: {seats}',
            related_id=session.id,
            related_model="Session",
            metadata={"participant_count": session.participant_count, "capacity": session.capacity},
        ),
    ]
    db.commit()
    db.refresh(session)
    logger.info("User %s joined session %s (%s)", user.id, session.id, seats)
    return session, True, notifications


# ======================
# LIFECYCLE
# ======================

def _transition(db: DbSession, session: models.Session, to_status: str, **values) -> None:
    """Compare-and-swap from an open status to ``to_status``."""
    result = db.execute(
        update(models.Session)
        .where(
            models.Session.id == session.id,
            models.Session.status.in_(OPEN_STATUSES),
        )
        .values(status=to_status, updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        db.refresh(session)
        raise InvalidStateError(f"Session is already {session.status}")
    db.refresh(session)


def _notify_others(
    db: DbSession,
    session: models.Session,
    actor: models.User,
    *,
    type: str,
    title: str,
    message: str,
    metadata: Optional[dict] = None,
) -> List[models.Notification]:
    recipients = [session.mentor_id] + session.participant_ids
    return [
        notification_service.create_notification(
            db,
            recipient_id=recipient_id,
            sender_id=actor.id,
            type=type,
            title=title,
            message=message,
            related_id=session.id,
            related_model="Session",
            metadata=metadata or {},
        )
        for recipient_id in dict.fromkeys(recipients)
        if recipient_id != actor.id
    ]


def complete_session(
    db: DbSession,
    *,
    session_id: int,
    actor: models.User,
    notes: Optional[str] = None,
    actual_duration=None,
) -> Tuple[models.Session, List[models.Notification]]:
    session = get_session(db, session_id)
    if not session.is_participant(actor.id):
        raise AuthorizationError("Not authorized to complete this session")
    if session.status == "completed":
        raise InvalidStateError("Session has already been completed")
    if session.status == "cancelled":
        raise InvalidStateError("Cannot complete a cancelled session")

    values = {"completed_at": utcnow(), "completed_by": actor.id}
    if notes and notes.strip():
        values["completion_notes"] = notes.strip()
    if actual_duration is not None:
        values["actual_duration"] = _positive_int(actual_duration, "Actual duration")

    _transition(db, session, "completed", **values)
    notifications = _notify_others(
        db,
        session,
        actor,
        type="session_completed",
        title="Session Completed",
        message=f'{actor.name} marked the session "{session.title}" as completed. You can now leave a review.',
    )
    db.commit()
    db.refresh(session)
    logger.info("Session %s completed by user %s", session.id, actor.id)
    return session, notifications


def cancel_session(
    db: DbSession,
    *,
    session_id: int,
    actor: models.User,
    reason: Optional[str],
    mentor_only: bool = False,
) -> Tuple[models.Session, List[models.Notification]]:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Cancellation reason is required")
    if len(reason) > 500:
        raise ValidationError("Cancellation reason must be less than 500 characters")

    session = get_session(db, session_id)
    if mentor_only and session.mentor_id != actor.id:
        raise AuthorizationError("You can only cancel your own sessions")
    if not session.is_participant(actor.id):
        raise AuthorizationError("Not authorized to cancel this session")
    if session.status == "completed":
        raise InvalidStateError("Cannot cancel a completed session")
    if session.status == "cancelled":
        raise InvalidStateError("Session has already been cancelled")

    _transition(
        db,
        session,
        "cancelled",
        cancelled_at=utcnow(),
        cancelled_by=actor.id,
        cancellation_reason=reason,
    )
    notifications = _notify_others(
        db,
        session,
        actor,
        type="session_cancelled",
        title="Session Cancelled",
        message=f'Session "{session.title}" has been cancelled. Reason: {reason}',
        metadata={"reason": reason},
    )
    db.commit()
    db.refresh(session)
    logger.info("Session %s cancelled by user %s (%s notified)", session.id, actor.id, len(notifications))
    return session, notifications


# ======================
# QUERIES
# ======================

def _joined_session_ids(db: DbSession, user_id: int):
    return db.query(models.SessionParticipant.session_id).filter(
        models.SessionParticipant.user_id == user_id
    )


def available_sessions_query(
    db: DbSession,
    user: models.User,
    *,
    subject: Optional[str] = None,
    date: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Query:
    """Future sessions with free seats that ``user`` has not joined."""
    now = now or utcnow()
    query = db.query(models.Session).filter(
        models.Session.status.in_(OPEN_STATUSES),
        models.Session.scheduled_at >= now,
        models.Session.participant_count < models.Session.capacity,
        models.Session.mentor_id != user.id,
        ~models.Session.id.in_(_joined_session_ids(db, user.id)),
    )
    if subject:
        like = f"%{subject.strip()}%"
        query = query.filter(
            or_(models.Session.title.ilike(like), models.Session.description.ilike(like))
        )
    if date:
        try:
            day_start = parse_iso(f"{date.strip()}T00:00:00")
        except ValueError:
            raise ValidationError("Invalid date. Use YYYY-MM-DD")
        query = query.filter(
            models.Session.scheduled_at >= day_start,
            models.Session.scheduled_at < day_start + timedelta(days=1),
        )
    return query.order_by(models.Session.scheduled_at.asc(), models.Session.id.asc())


def user_sessions_query(db: DbSession, user: models.User, status: Optional[str] = None) -> Query:
    query = db.query(models.Session).filter(
        or_(
            models.Session.mentor_id == user.id,
            models.Session.id.in_(_joined_session_ids(db, user.id)),
        )
    )
    if status:
        if status not in SESSION_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(SESSION_STATUSES)}")
        query = query.filter(models.Session.status == status)
    return query.order_by(models.Session.scheduled_at.desc(), models.Session.id.desc())


def mentor_open_sessions_query(db: DbSession, mentor: models.User) -> Query:
    """Sessions the mentor published directly (not spawned from a request)."""
    return (
        db.query(models.Session)
        .filter(
            models.Session.mentor_id == mentor.id,
            models.Session.request_id.is_(None),
        )
        .order_by(models.Session.scheduled_at.asc(), models.Session.id.asc())
    )
