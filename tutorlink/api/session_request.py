# tutorlink/api/session_request.py
"""
Session Request API Router

Endpoints:
- POST /session-requests - Student asks a mentor for a session
- GET /session-requests/student - Requests the student has sent
- GET /session-requests/mentor - Requests addressed to the mentor
- GET /session-requests/{request_id} - One request (participants, admins)
- PUT /session-requests/{request_id}/accept - Accept and schedule
- PUT /session-requests/{request_id}/reject - Reject with an optional reason
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from tutorlink import models
from tutorlink.config import settings
from tutorlink.database import get_db
from tutorlink.schemas import (
    SessionRequestAccept,
    SessionRequestCreate,
    SessionRequestReject,
    SessionRequestResponse,
    SessionResponse,
    envelope,
)
from tutorlink.services import notification_service, session_request_service
from tutorlink.utils.pagination import paginate
from tutorlink.utils.security import require_approved, require_role

router = APIRouter(prefix="/session-requests", tags=["Session Requests"])

require_student = require_role("student")
require_mentor = require_role("mentor")


# ======================
# CREATE
# ======================
@router.post("", status_code=status.HTTP_201_CREATED)
def create_session_request(
    payload: SessionRequestCreate,
    current_user: models.User = Depends(require_student),
    db: Session = Depends(get_db),
):
    request, notification = session_request_service.create_request(
        db,
        student=current_user,
        mentor_id=payload.mentor_id,
        subject=payload.subject,
        duration=payload.duration,
        preferred_times=payload.preferred_times,
        description=payload.description,
        proposed_price=payload.proposed_price,
    )
    notification_service.dispatch_email_for_notification(db, notification)
    return envelope(
        {"request": SessionRequestResponse.from_model(request)},
        "Session request sent successfully",
    )


# ======================
# LISTINGS
# ======================
@router.get("/student")
def list_student_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    current_user: models.User = Depends(require_student),
    db: Session = Depends(get_db),
):
    rows, pagination = paginate(
        session_request_service.student_requests_query(db, current_user.id), page, limit
    )
    return envelope({
        "requests": [SessionRequestResponse.from_model(r) for r in rows],
        "pagination": pagination,
    })


@router.get("/mentor")
def list_mentor_requests(
    status_filter: Optional[str] = Query("pending", alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    current_user: models.User = Depends(require_mentor),
    db: Session = Depends(get_db),
):
    query = session_request_service.mentor_requests_query(
        db, current_user.id, status=status_filter or "pending"
    )
    rows, pagination = paginate(query, page, limit)
    return envelope({
        "requests": [SessionRequestResponse.from_model(r) for r in rows],
        "pagination": pagination,
    })


@router.get("/{request_id}")
def get_session_request(
    request_id: int,
    current_user: models.User = Depends(require_approved),
    db: Session = Depends(get_db),
):
    request = session_request_service.get_request_for_user(db, request_id, current_user)
    return envelope({"request": SessionRequestResponse.from_model(request)})


# ======================
# RESPOND
# ======================
@router.put("/{request_id}/accept")
def accept_session_request(
    request_id: int,
    payload: SessionRequestAccept,
    current_user: models.User = Depends(require_mentor),
    db: Session = Depends(get_db),
):
    request, session, notification = session_request_service.accept_request(
        db,
        request_id=request_id,
        mentor=current_user,
        scheduled_date=payload.scheduled_date,
        meeting_link=payload.meeting_link,
    )
    notification_service.dispatch_email_for_notification(db, notification)
    return envelope(
        {
            "request": SessionRequestResponse.from_model(request),
            "session": SessionResponse.from_model(session),
        },
        "Session request accepted and session created",
    )


@router.put("/{request_id}/reject")
def reject_session_request(
    request_id: int,
    payload: Optional[SessionRequestReject] = None,
    current_user: models.User = Depends(require_mentor),
    db: Session = Depends(get_db),
):
    request, notification = session_request_service.reject_request(
        db,
        request_id=request_id,
        mentor=current_user,
        reason=payload.reason if payload else None,
    )
    notification_service.dispatch_email_for_notification(db, notification)
    return envelope(
        {"request": SessionRequestResponse.from_model(request)},
        "Session request rejected",
    )
