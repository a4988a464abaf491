from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tutorlink import models
from tutorlink.config import settings
from tutorlink.crud import user as user_crud
from tutorlink.database import get_db
from tutorlink.exceptions import NotFoundError
from tutorlink.schemas import UserMe, UserPublic, envelope
from tutorlink.utils.pagination import paginate
from tutorlink.utils.security import get_current_user

router = APIRouter(prefix="/users", tags=["Users"])


# ======================
# GET: Current user
# ======================
@router.get("/me")
def get_me(current_user: models.User = Depends(get_current_user)):
    return envelope({"user": UserMe.model_validate(current_user)})


# ======================
# GET: Bookable mentors
# ======================
@router.get("/mentors")
def list_mentors(
    subject: Optional[str] = Query(None, description="Substring match on the mentor bio"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(models.User).filter(
        models.User.role == "mentor",
        models.User.is_active.is_(True),
        models.User.is_approved.is_(True),
        models.User.documents_verified.is_(True),
    )
    if subject and subject.strip():
        query = query.filter(models.User.bio.ilike(f"%{subject.strip()}%"))
    query = query.order_by(models.User.rating.desc(), models.User.total_reviews.desc(), models.User.id.asc())

    mentors, pagination = paginate(query, page, limit)
    return envelope({
        "mentors": [UserPublic.model_validate(m) for m in mentors],
        "pagination": pagination,
    })


# ======================
# GET: Public profile
# ======================
@router.get("/{user_id}")
def get_user_profile(
    user_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = user_crud.get_user(db, user_id)
    if not user or not user.is_active:
        raise NotFoundError("User not found")
    return envelope({"user": UserPublic.model_validate(user)})
