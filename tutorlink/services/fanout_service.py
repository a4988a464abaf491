# tutorlink/services/fanout_service.py
"""
Open-session fan-out.

When a mentor publishes an open session, every student in the audience gets
one ``session_notification`` record. The audience is resolved inside the
request so it reflects the data at publish time; delivery runs either inline
or as a FastAPI background task, writing notifications in batches with a
bounded retry per batch. Recipients that already hold a notification for the
session are skipped, so a retried or repeated dispatch never duplicates.
"""

import logging
import time
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DbSession

from tutorlink import models
from tutorlink.config import settings
from tutorlink.crud import user as user_crud
from tutorlink.database import SessionLocal
from tutorlink.services import notification_service

logger = logging.getLogger(__name__)

# Sessions that count as a past booking with the mentor
AUDIENCE_STATUSES = ("scheduled", "active", "completed")


def resolve_audience(db: DbSession, mentor_id: int) -> List[int]:
    """
    Distinct students who took part in any of the mentor's non-cancelled
    sessions. When there are none, every active, approved and
    document-verified student is used instead.
    """
    rows = (
        db.query(models.SessionParticipant.user_id)
        .join(models.Session, models.Session.id == models.SessionParticipant.session_id)
        .join(models.User, models.User.id == models.SessionParticipant.user_id)
        .filter(
            models.Session.mentor_id == mentor_id,
            models.Session.status.in_(AUDIENCE_STATUSES),
            models.SessionParticipant.user_id != mentor_id,
            models.User.role == "student",
        )
        .distinct()
        .order_by(models.SessionParticipant.user_id.asc())
        .all()
    )
    audience = [row[0] for row in rows]
    if audience:
        return audience

    fallback = user_crud.list_users(db, role="student", approved_only=True, verified_only=True)
    return [user.id for user in fallback if user.id != mentor_id]


def _session_snapshot(session: models.Session, mentor: models.User) -> Dict[str, object]:
    return {
        "mentor_name": mentor.name,
        "session_title": session.title,
        "session_date": session.scheduled_at.isoformat(),
        "duration": session.duration,
        "description": session.description,
        "meet_link": session.meet_link,
        "capacity": session.capacity,
    }


def _already_notified(db: DbSession, session_id: int) -> set:
    rows = db.query(models.Notification.recipient_id).filter(
        models.Notification.type == "session_notification",
        models.Notification.related_model == "Session",
        models.Notification.related_id == session_id,
    ).all()
    return {row[0] for row in rows}


def _write_batch(db: DbSession, recipient_ids: List[int], fields: Dict[str, object]) -> bool:
    max_attempts = max(1, settings.FANOUT_MAX_ATTEMPTS)
    for attempt in range(1, max_attempts + 1):
        try:
            db.add_all([
                notification_service.build_notification(
                    recipient_id=recipient_id,
                    metadata=dict(fields["metadata"]),
                    **{k: v for k, v in fields.items() if k != "metadata"},
                )
                for recipient_id in recipient_ids
            ])
            db.commit()
            return True
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(
                "Fan-out batch of %s failed (attempt %s/%s): %s",
                len(recipient_ids), attempt, max_attempts, exc,
            )
            if attempt < max_attempts:
                time.sleep(settings.FANOUT_RETRY_DELAY_SECONDS * attempt)

    logger.error(
        "Fan-out batch dropped after %s attempts (session_id=%s, recipients=%s)",
        max_attempts, fields.get("related_id"), recipient_ids,
    )
    return False


def deliver_session_notifications(
    db: DbSession,
    *,
    session_id: int,
    sender_id: int,
    recipient_ids: Iterable[int],
) -> int:
    """Write the notifications and return how many were persisted."""
    session = db.query(models.Session).filter(models.Session.id == session_id).first()
    if not session:
        logger.warning("Fan-out skipped: session %s no longer exists", session_id)
        return 0
    mentor = session.mentor

    skip = _already_notified(db, session_id)
    pending = [rid for rid in dict.fromkeys(recipient_ids) if rid not in skip and rid != sender_id]
    if not pending:
        return 0

    when = session.scheduled_at.strftime("%Y-%m-%d at %H:%M")
    fields = {
        "sender_id": sender_id,
        "type": "session_notification",
        "title": "New Session Available",
        "message": (
            f'{mentor.name} has scheduled a new session: "{session.title}" on {when} UTC. '
            f"Duration: {session.duration} minutes."
        ),
        "related_id": session.id,
        "related_model": "Session",
        "metadata": _session_snapshot(session, mentor),
    }

    batch_size = max(1, settings.FANOUT_BATCH_SIZE)
    delivered = 0
    for start in range(0, len(pending), batch_size):
        batch = pending[start:start + batch_size]
        if _write_batch(db, batch, fields):
            delivered += len(batch)

    logger.info("Fan-out for session %s: %s/%s notifications written", session_id, delivered, len(pending))
    return delivered


def deliver_in_background(
    session_id: int,
    sender_id: int,
    recipient_ids: List[int],
    session_factory: Optional[Callable[[], DbSession]] = None,
) -> int:
    """Background-task entry point; owns its own database session."""
    db = (session_factory or SessionLocal)()
    try:
        return deliver_session_notifications(
            db,
            session_id=session_id,
            sender_id=sender_id,
            recipient_ids=recipient_ids,
        )
    except Exception:
        logger.exception("Background fan-out crashed (session_id=%s)", session_id)
        return 0
    finally:
        db.close()


def dispatch_open_session_fan_out(
    db: DbSession,
    *,
    session: models.Session,
    mentor: models.User,
    background_tasks=None,
) -> Dict[str, int]:
    audience = resolve_audience(db, mentor.id)
    logger.info("Fan-out audience for session %s: %s students", session.id, len(audience))

    if background_tasks is not None and settings.FANOUT_ASYNC:
        background_tasks.add_task(deliver_in_background, session.id, mentor.id, audience)
        return {
            "students_notified": len(audience),
            "notifications_sent": 0,
            "notifications_queued": len(audience),
        }

    sent = deliver_session_notifications(
        db,
        session_id=session.id,
        sender_id=mentor.id,
        recipient_ids=audience,
    )
    return {
        "students_notified": len(audience),
        "notifications_sent": sent,
        "notifications_queued": 0,
    }
