# tutorlink/services/review_service.py
"""
Review Service Layer
Business logic for review submission and reviewee rating aggregates
"""

import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from tutorlink import models
from tutorlink.crud import review as review_crud
from tutorlink.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from tutorlink.models.review import Review
from tutorlink.services import notification_service

logger = logging.getLogger(__name__)


def _check_rating(rating: Optional[int]) -> None:
    if rating is not None and not (1 <= rating <= 5):
        raise ValidationError("Rating must be between 1 and 5")


def _resolve_reviewee(session: models.Session, reviewer: models.User, reviewee_id: Optional[int]) -> int:
    """
    Students always review the mentor. The mentor reviews one of the
    attached students; a direct session's single student is the default.
    """
    if reviewer.id != session.mentor_id:
        if reviewee_id is not None and reviewee_id != session.mentor_id:
            raise ValidationError("Students can only review the session mentor")
        return session.mentor_id

    students = session.participant_ids
    if reviewee_id is not None:
        if reviewee_id not in students:
            raise ValidationError("Reviewee must be a participant of this session")
        return reviewee_id
    if len(students) == 1:
        return students[0]
    raise ValidationError("reviewee_id is required to review a session with several students")


# ======================
# REVIEW SUBMISSION
# ======================

def submit_review(
    db: Session,
    *,
    session_id: int,
    reviewer: models.User,
    rating: int,
    comment: Optional[str] = None,
    reviewee_id: Optional[int] = None,
    is_public: bool = True,
) -> Tuple[Review, Tuple[float, int], Optional[models.Notification]]:
    """
    Review a completed session.

    Args:
        db: Database session
        session_id: Session being reviewed
        reviewer: Authenticated participant writing the review
        rating: Rating value (1-5)
        comment: Optional text comment
        reviewee_id: Student being reviewed, when the mentor writes the review

    Returns:
        (review, (new_average, new_total), review_received notification)

    Raises:
        NotFoundError: Session does not exist
        AuthorizationError: Reviewer did not take part in the session
        InvalidStateError: Session is not completed
        ConflictError: Reviewer already reviewed this session
        ValidationError: Bad rating or reviewee
    """
    session = db.query(models.Session).filter(models.Session.id == session_id).first()
    if not session:
        raise NotFoundError("Session not found")
    if not session.is_participant(reviewer.id):
        raise AuthorizationError("You can only review sessions you participated in")
    if session.status != "completed":
        raise InvalidStateError("Only completed sessions can be reviewed")
    if review_crud.get_review_for_reviewer(db, session_id, reviewer.id):
        raise ConflictError("You have already reviewed this session")

    _check_rating(rating)
    target_id = _resolve_reviewee(session, reviewer, reviewee_id)

    try:
        review = review_crud.create_review(
            db=db,
            session_id=session_id,
            reviewer_id=reviewer.id,
            reviewee_id=target_id,
            rating=rating,
            comment=comment,
            is_public=is_public,
        )
    except IntegrityError:
        db.rollback()
        raise ConflictError("You have already reviewed this session")

    reviewee = review_crud.refresh_user_rating(db, target_id)
    notification = notification_service.create_notification(
        db,
        recipient_id=target_id,
        sender_id=reviewer.id,
        type="review_received",
        title="New Review Received",
        message=f'{reviewer.name} rated your session "{session.title}" {rating}/5.',
        related_id=review.id,
        related_model="Review",
        metadata={"session_id": session_id, "rating": rating},
    )
    db.commit()
    db.refresh(review)
    logger.info(
        "Review %s on session %s: user %s rated user %s %s/5",
        review.id, session_id, reviewer.id, target_id, rating,
    )
    return review, (reviewee.rating, reviewee.total_reviews), notification


def _owned_review(db: Session, review_id: int, author: models.User) -> Review:
    review = review_crud.get_review_by_id(db, review_id)
    if not review or review.reviewer_id != author.id:
        raise NotFoundError("Review not found or you are not authorized to modify it")
    return review


def update_review(
    db: Session,
    *,
    review_id: int,
    author: models.User,
    rating: Optional[int] = None,
    comment: Optional[str] = None,
) -> Tuple[Review, Tuple[float, int]]:
    """Edit the author's own review; the reviewee aggregate is recomputed."""
    review = _owned_review(db, review_id, author)
    _check_rating(rating)

    review_crud.update_review(db, review, rating=rating, comment=comment)
    reviewee = review_crud.refresh_user_rating(db, review.reviewee_id)
    db.commit()
    db.refresh(review)
    return review, (reviewee.rating, reviewee.total_reviews)


def delete_review(db: Session, *, review_id: int, author: models.User) -> Tuple[float, int]:
    review = _owned_review(db, review_id, author)
    reviewee_id = review.reviewee_id

    review_crud.delete_review(db, review)
    reviewee = review_crud.refresh_user_rating(db, reviewee_id)
    db.commit()
    logger.info("Review %s deleted by user %s", review_id, author.id)
    return (reviewee.rating, reviewee.total_reviews)


# ======================
# READS
# ======================

def user_reviews_query(db: Session, user_id: int) -> Query:
    if not db.query(models.User.id).filter(models.User.id == user_id).first():
        raise NotFoundError("User not found")
    return review_crud.reviews_for_reviewee_query(db, user_id, public_only=True)


def my_reviews_query(db: Session, user: models.User) -> Query:
    return review_crud.reviews_by_reviewer_query(db, user.id)


def session_reviews(db: Session, *, session_id: int, user: models.User):
    session = db.query(models.Session).filter(models.Session.id == session_id).first()
    if not session:
        raise NotFoundError("Session not found")
    if not session.is_participant(user.id) and not user.is_admin:
        raise AuthorizationError("Not authorized to view reviews for this session")
    return review_crud.get_reviews_by_session(db, session_id)


def get_rating_summary(db: Session, user_id: int) -> Dict[str, Any]:
    """Stored aggregate plus the per-star distribution."""
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return {
        "user_id": user.id,
        "average_rating": round(user.rating or 0.0, 2),
        "total_reviews": user.total_reviews or 0,
        "distribution": review_crud.get_rating_distribution(db, user.id),
    }
