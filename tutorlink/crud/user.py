from typing import List, Optional

from sqlalchemy.orm import Session

from tutorlink import models
from tutorlink.utils.security import get_password_hash


def create_user(
    db: Session,
    *,
    name: str,
    email: str,
    password: str,
    role: str,
    bio: Optional[str] = None,
    is_approved: bool = False,
) -> models.User:
    db_user = models.User(
        name=name,
        email=email.strip().lower(),
        password_hash=get_password_hash(password),
        role=role,
        bio=bio,
        is_active=True,
        is_approved=is_approved,
    )
    db.add(db_user)
    db.flush()
    return db_user


def get_user(db: Session, user_id: int) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email.strip().lower()).first()


def get_active_mentor(db: Session, mentor_id: int) -> Optional[models.User]:
    """Mentor that can currently take bookings."""
    return db.query(models.User).filter(
        models.User.id == mentor_id,
        models.User.role == "mentor",
        models.User.is_active.is_(True),
        models.User.is_approved.is_(True),
    ).first()


def list_users(
    db: Session,
    *,
    role: Optional[str] = None,
    approved_only: bool = False,
    verified_only: bool = False,
) -> List[models.User]:
    query = db.query(models.User).filter(models.User.is_active.is_(True))
    if role:
        query = query.filter(models.User.role == role)
    if approved_only:
        query = query.filter(models.User.is_approved.is_(True))
    if verified_only:
        query = query.filter(models.User.documents_verified.is_(True))
    return query.order_by(models.User.id.asc()).all()


def update_rating(db: Session, user_id: int, average: float, count: int) -> Optional[models.User]:
    """Write a recomputed review aggregate onto the user row."""
    user = get_user(db, user_id)
    if not user:
        return None
    user.rating = average
    user.total_reviews = count
    db.flush()
    return user
