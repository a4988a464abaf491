"""
Review & Rating Pydantic Schemas
Request/response models with validation
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ======================
# REVIEW SCHEMAS
# ======================

class ReviewBase(BaseModel):
    """Base review schema"""
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5 stars")
    comment: Optional[str] = Field(None, max_length=1000, description="Review comment (max 1000 chars)")

    @field_validator("comment")
    @classmethod
    def validate_comment(cls, v):
        """Blank comments are stored as no comment"""
        if v is None:
            return None
        return v.strip() or None


class ReviewCreate(ReviewBase):
    """Schema for reviewing a completed session"""
    reviewee_id: Optional[int] = Field(None, description="Required when a mentor reviews a group session")
    is_public: bool = True


class ReviewUpdate(BaseModel):
    """Schema for updating a review"""
    rating: Optional[int] = Field(None, ge=1, le=5, description="New rating (1-5)")
    comment: Optional[str] = Field(None, max_length=1000, description="New comment")

    @field_validator("comment")
    @classmethod
    def validate_comment(cls, v):
        if v is None:
            return None
        return v.strip() or None


class ReviewResponse(BaseModel):
    """Review response for API"""
    id: int
    session_id: int
    reviewer_id: int
    reviewer_name: Optional[str] = None
    reviewee_id: int
    reviewee_name: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    is_public: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_model(cls, review) -> "ReviewResponse":
        return cls(
            id=review.id,
            session_id=review.session_id,
            reviewer_id=review.reviewer_id,
            reviewer_name=review.reviewer.name if review.reviewer else None,
            reviewee_id=review.reviewee_id,
            reviewee_name=review.reviewee.name if review.reviewee else None,
            rating=review.rating,
            comment=review.comment,
            is_public=review.is_public,
            created_at=review.created_at,
            updated_at=review.updated_at,
        )


class RatingSummary(BaseModel):
    """Reviewee aggregate after a review write"""
    user_id: int
    average_rating: float
    total_reviews: int
