# tutorlink/api/session_notification.py
"""
Open sessions published by mentors and joined by students.

Creating a session fans out a ``session_notification`` to the mentor's
audience; with FANOUT_ASYNC the writes run after the response is sent.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from tutorlink import models
from tutorlink.config import settings
from tutorlink.database import get_db
from tutorlink.schemas import FanOutSummary, OpenSessionCreate, SessionResponse, envelope
from tutorlink.services import notification_service, session_service
from tutorlink.utils.pagination import paginate
from tutorlink.utils.security import require_role

router = APIRouter(prefix="/session-notifications", tags=["Open Sessions"])

require_mentor = require_role("mentor")
require_student = require_role("student")

DEFAULT_MENTOR_CANCEL_REASON = "Cancelled by mentor"


@router.post("/create-session", status_code=status.HTTP_201_CREATED)
def create_open_session(
    payload: OpenSessionCreate,
    background_tasks: BackgroundTasks,
    current_user: models.User = Depends(require_mentor),
    db: Session = Depends(get_db),
):
    session, summary = session_service.create_open_session(
        db,
        mentor=current_user,
        title=payload.title,
        date=payload.date,
        time=payload.time,
        duration=payload.duration,
        meet_link=payload.meet_link,
        capacity=payload.capacity,
        description=payload.description,
        notes=payload.notes,
        materials=payload.materials,
        background_tasks=background_tasks,
    )
    summary = FanOutSummary(**summary)
    if summary.notifications_queued:
        message = f"Session created; notifying {summary.students_notified} students"
    else:
        message = f"Session created and {summary.notifications_sent} students notified"
    return envelope(
        {"session": SessionResponse.from_model(session), **summary.model_dump()},
        message,
    )


@router.post("/join-session/{session_id}")
def join_session(
    session_id: int,
    current_user: models.User = Depends(require_student),
    db: Session = Depends(get_db),
):
    session, joined, notifications = session_service.join_session(
        db, session_id=session_id, user=current_user
    )
    notification_service.dispatch_emails(db, notifications)
    message = "Successfully joined the session" if joined else "You have already joined this session"
    return envelope({"session": SessionResponse.from_model(session), "joined": joined}, message)


@router.get("/available-sessions")
def list_available_sessions(
    subject: Optional[str] = Query(None),
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    current_user: models.User = Depends(require_student),
    db: Session = Depends(get_db),
):
    query = session_service.available_sessions_query(db, current_user, subject=subject, date=date)
    sessions, pagination = paginate(query, page, limit)
    return envelope({
        "sessions": [SessionResponse.from_model(s) for s in sessions],
        "pagination": pagination,
    })


@router.get("/my-sessions")
def list_my_open_sessions(
    current_user: models.User = Depends(require_mentor),
    db: Session = Depends(get_db),
):
    sessions = session_service.mentor_open_sessions_query(db, current_user).all()
    data = []
    for s in sessions:
        item = SessionResponse.from_model(s).model_dump()
        item["participants"] = [
            {"id": p.user_id, "name": p.user.name if p.user else None, "joined_at": p.joined_at}
            for p in s.participants
        ]
        data.append(item)
    return envelope({"sessions": data})


@router.delete("/cancel-session/{session_id}")
def cancel_open_session(
    session_id: int,
    reason: Optional[str] = Query(None, max_length=500),
    current_user: models.User = Depends(require_mentor),
    db: Session = Depends(get_db),
):
    session, notifications = session_service.cancel_session(
        db,
        session_id=session_id,
        actor=current_user,
        reason=reason or DEFAULT_MENTOR_CANCEL_REASON,
        mentor_only=True,
    )
    notification_service.dispatch_emails(db, notifications)
    return envelope(
        {"session": SessionResponse.from_model(session), "participants_notified": len(notifications)},
        "Session cancelled successfully",
    )
