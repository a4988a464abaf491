# tutorlink/crud/review.py
"""
Review CRUD Operations
Database access for reviews and reviewee rating aggregates
"""

from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from tutorlink.crud import user as user_crud
from tutorlink.models.review import Review
from tutorlink.models.user import User


# ======================
# REVIEW CRUD
# ======================

def create_review(
    db: Session,
    session_id: int,
    reviewer_id: int,
    reviewee_id: int,
    rating: int,
    comment: Optional[str] = None,
    is_public: bool = True,
) -> Review:
    """
    Insert a review row.

    Raises:
        ValueError: If rating is out of range
    """
    if not (1 <= rating <= 5):
        raise ValueError("Rating must be between 1 and 5")

    review = Review(
        session_id=session_id,
        reviewer_id=reviewer_id,
        reviewee_id=reviewee_id,
        rating=rating,
        comment=comment,
        is_public=is_public,
    )
    db.add(review)
    db.flush()
    return review


def get_review_by_id(db: Session, review_id: int) -> Optional[Review]:
    return db.query(Review).filter(Review.id == review_id).first()


def get_review_for_reviewer(db: Session, session_id: int, reviewer_id: int) -> Optional[Review]:
    """The single review a reviewer may leave on a session, if any."""
    return db.query(Review).filter(
        Review.session_id == session_id,
        Review.reviewer_id == reviewer_id,
    ).first()


def get_reviews_by_session(db: Session, session_id: int) -> List[Review]:
    return (
        db.query(Review)
        .filter(Review.session_id == session_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .all()
    )


def reviews_for_reviewee_query(db: Session, reviewee_id: int, public_only: bool = True) -> Query:
    query = db.query(Review).filter(Review.reviewee_id == reviewee_id)
    if public_only:
        query = query.filter(Review.is_public.is_(True))
    return query.order_by(Review.created_at.desc(), Review.id.desc())


def reviews_by_reviewer_query(db: Session, reviewer_id: int) -> Query:
    return (
        db.query(Review)
        .filter(Review.reviewer_id == reviewer_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
    )


def update_review(
    db: Session,
    review: Review,
    rating: Optional[int] = None,
    comment: Optional[str] = None,
) -> Review:
    """
    Apply a partial update.

    Raises:
        ValueError: If rating is out of range
    """
    if rating is not None:
        if not (1 <= rating <= 5):
            raise ValueError("Rating must be between 1 and 5")
        review.rating = rating

    if comment is not None:
        review.comment = comment

    db.flush()
    return review


def delete_review(db: Session, review: Review) -> None:
    db.delete(review)
    db.flush()


# ======================
# RATING AGGREGATE
# ======================

def calculate_user_rating(db: Session, user_id: int) -> Tuple[float, int]:
    """
    Mean rating and count over every review naming ``user_id`` as reviewee.

    Returns:
        Tuple of (average_rating, total_reviews); (0.0, 0) with no reviews
    """
    result = db.query(
        func.avg(Review.rating).label("avg_rating"),
        func.count(Review.id).label("total"),
    ).filter(
        Review.reviewee_id == user_id
    ).first()

    total = int(result.total) if result.total else 0
    avg_rating = float(result.avg_rating) if total else 0.0
    return (avg_rating, total)


def refresh_user_rating(db: Session, user_id: int) -> Optional[User]:
    """Full recomputation of the reviewee aggregate."""
    avg_rating, total = calculate_user_rating(db, user_id)
    return user_crud.update_rating(db, user_id, avg_rating, total)


def get_rating_distribution(db: Session, user_id: int) -> dict:
    """Count of reviews per star value: {1: count, ..., 5: count}"""
    distribution = {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}

    results = db.query(
        Review.rating,
        func.count(Review.id).label("count"),
    ).filter(
        Review.reviewee_id == user_id
    ).group_by(
        Review.rating
    ).all()

    for rating, count in results:
        distribution[rating] = count

    return distribution
