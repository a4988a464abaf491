# tutorlink/api/session.py
"""
Session Management API
Lifecycle of direct and open sessions plus per-session reviews
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from tutorlink import models
from tutorlink.config import settings
from tutorlink.database import get_db
from tutorlink.schemas import (
    RatingSummary,
    ReviewCreate,
    ReviewResponse,
    SessionCancel,
    SessionComplete,
    SessionResponse,
    envelope,
)
from tutorlink.services import notification_service, review_service, session_service
from tutorlink.utils.pagination import paginate
from tutorlink.utils.security import require_approved

router = APIRouter(prefix="/sessions", tags=["sessions"])


# ======================
# READS
# ======================
@router.get("")
def list_my_sessions(
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    current_user: models.User = Depends(require_approved),
    db: Session = Depends(get_db),
):
    """Sessions the caller mentors or attends, newest first."""
    query = session_service.user_sessions_query(db, current_user, status=status_filter)
    sessions, pagination = paginate(query, page, limit)
    return envelope({
        "sessions": [SessionResponse.from_model(s) for s in sessions],
        "pagination": pagination,
    })


@router.get("/{session_id}")
def get_session(
    session_id: int,
    current_user: models.User = Depends(require_approved),
    db: Session = Depends(get_db),
):
    session = session_service.get_session_for_user(db, session_id, current_user)
    return envelope({"session": SessionResponse.from_model(session)})


@router.get("/{session_id}/reviews")
def get_session_reviews(
    session_id: int,
    current_user: models.User = Depends(require_approved),
    db: Session = Depends(get_db),
):
    reviews = review_service.session_reviews(db, session_id=session_id, user=current_user)
    return envelope({"reviews": [ReviewResponse.from_model(r) for r in reviews]})


# ======================
# LIFECYCLE
# ======================
@router.put("/{session_id}/complete")
def complete_session(
    session_id: int,
    payload: Optional[SessionComplete] = None,
    current_user: models.User = Depends(require_approved),
    db: Session = Depends(get_db),
):
    payload = payload or SessionComplete()
    session, notifications = session_service.complete_session(
        db,
        session_id=session_id,
        actor=current_user,
        notes=payload.notes,
        actual_duration=payload.actual_duration,
    )
    notification_service.dispatch_emails(db, notifications)
    return envelope({"session": SessionResponse.from_model(session)}, "Session marked as completed")


@router.put("/{session_id}/cancel")
def cancel_session(
    session_id: int,
    payload: SessionCancel,
    current_user: models.User = Depends(require_approved),
    db: Session = Depends(get_db),
):
    session, notifications = session_service.cancel_session(
        db,
        session_id=session_id,
        actor=current_user,
        reason=payload.reason,
    )
    notification_service.dispatch_emails(db, notifications)
    return envelope({"session": SessionResponse.from_model(session)}, "Session cancelled successfully")


# ======================
# REVIEW
# ======================
@router.post("/{session_id}/review", status_code=status.HTTP_201_CREATED)
def review_session(
    session_id: int,
    payload: ReviewCreate,
    current_user: models.User = Depends(require_approved),
    db: Session = Depends(get_db),
):
    review, (average, total), notification = review_service.submit_review(
        db,
        session_id=session_id,
        reviewer=current_user,
        rating=payload.rating,
        comment=payload.comment,
        reviewee_id=payload.reviewee_id,
        is_public=payload.is_public,
    )
    notification_service.dispatch_email_for_notification(db, notification)
    return envelope(
        {
            "review": ReviewResponse.from_model(review),
            "reviewee_rating": RatingSummary(
                user_id=review.reviewee_id,
                average_rating=round(average, 2),
                total_reviews=total,
            ),
        },
        "Review submitted successfully",
    )
