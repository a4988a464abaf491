# tutorlink/api/review.py
"""
Review & Rating API Router

Endpoints:
- GET /reviews/user/{user_id} - Public reviews and rating of a user
- GET /reviews/my-reviews - Reviews the caller has written
- PUT /reviews/{review_id} - Update own review
- DELETE /reviews/{review_id} - Delete own review

Reviews are submitted through POST /sessions/{session_id}/review.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tutorlink import models
from tutorlink.config import settings
from tutorlink.database import get_db
from tutorlink.schemas import RatingSummary, ReviewResponse, ReviewUpdate, envelope
from tutorlink.services import review_service
from tutorlink.utils.pagination import paginate
from tutorlink.utils.security import get_current_user, require_approved

router = APIRouter(prefix="/reviews", tags=["reviews"])


# ======================
# GET USER REVIEWS
# ======================
@router.get("/user/{user_id}")
def get_user_reviews(
    user_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Public reviews where ``user_id`` is the reviewee.

    Returns:
        Reviews page, pagination and the stored rating aggregate
    """
    reviews, pagination = paginate(review_service.user_reviews_query(db, user_id), page, limit)
    summary = review_service.get_rating_summary(db, user_id)
    return envelope({
        "reviews": [ReviewResponse.from_model(r) for r in reviews],
        "average_rating": summary["average_rating"],
        "total_reviews": summary["total_reviews"],
        "distribution": summary["distribution"],
        "pagination": pagination,
    })


# ======================
# GET MY REVIEWS
# ======================
@router.get("/my-reviews")
def get_my_reviews(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    current_user: models.User = Depends(require_approved),
    db: Session = Depends(get_db),
):
    reviews, pagination = paginate(review_service.my_reviews_query(db, current_user), page, limit)
    return envelope({
        "reviews": [ReviewResponse.from_model(r) for r in reviews],
        "pagination": pagination,
    })


# ======================
# UPDATE REVIEW
# ======================
@router.put("/{review_id}")
def update_review(
    review_id: int,
    payload: ReviewUpdate,
    current_user: models.User = Depends(require_approved),
    db: Session = Depends(get_db),
):
    """Only the author can update; the reviewee rating is recomputed."""
    review, (average, total) = review_service.update_review(
        db,
        review_id=review_id,
        author=current_user,
        rating=payload.rating,
        comment=payload.comment,
    )
    return envelope(
        {
            "review": ReviewResponse.from_model(review),
            "reviewee_rating": RatingSummary(
                user_id=review.reviewee_id,
                average_rating=round(average, 2),
                total_reviews=total,
            ),
        },
        "Review updated successfully",
    )


# ======================
# DELETE REVIEW
# ======================
@router.delete("/{review_id}")
def delete_review(
    review_id: int,
    current_user: models.User = Depends(require_approved),
    db: Session = Depends(get_db),
):
    average, total = review_service.delete_review(db, review_id=review_id, author=current_user)
    return envelope(
        {"average_rating": round(average, 2), "total_reviews": total},
        "Review deleted successfully",
    )
