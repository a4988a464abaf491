# tutorlink/api/admin.py
"""
Admin approval endpoints.
Accounts register as pending; an admin approves or rejects them and marks
their verification documents.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tutorlink import models
from tutorlink.config import settings
from tutorlink.database import get_db
from tutorlink.schemas import AccountRejection, DocumentVerification, UserMe, envelope
from tutorlink.services import account_service, notification_service
from tutorlink.utils.pagination import paginate
from tutorlink.utils.security import require_admin

router = APIRouter(prefix="/admin", tags=["Admin"])


# ─────────────────────────────────────────
# GET /admin/users/pending  (approval queue)
# ─────────────────────────────────────────
@router.get("/users/pending")
def list_pending_users(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    admin: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    users, pagination = paginate(account_service.pending_users_query(db), page, limit)
    return envelope({
        "users": [UserMe.model_validate(u) for u in users],
        "pagination": pagination,
    })


# ─────────────────────────────────────────
# PUT /admin/users/{id}/approve
# ─────────────────────────────────────────
@router.put("/users/{user_id}/approve")
def approve_user(
    user_id: int,
    admin: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user, notification = account_service.approve_user(db, user_id=user_id, admin=admin)
    notification_service.dispatch_email_for_notification(db, notification)
    return envelope({"user": UserMe.model_validate(user)}, "User approved successfully")


# ─────────────────────────────────────────
# PUT /admin/users/{id}/reject
# ─────────────────────────────────────────
@router.put("/users/{user_id}/reject")
def reject_user(
    user_id: int,
    payload: Optional[AccountRejection] = None,
    admin: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user, notification = account_service.reject_user(
        db, user_id=user_id, admin=admin, reason=payload.reason if payload else None
    )
    notification_service.dispatch_email_for_notification(db, notification)
    return envelope({"user": UserMe.model_validate(user)}, "User rejected")


# ─────────────────────────────────────────
# PUT /admin/users/{id}/verify-documents
# ─────────────────────────────────────────
@router.put("/users/{user_id}/verify-documents")
def verify_user_documents(
    user_id: int,
    payload: Optional[DocumentVerification] = None,
    admin: models.User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    payload = payload or DocumentVerification()
    user, notification = account_service.verify_documents(
        db,
        user_id=user_id,
        admin=admin,
        approved=payload.approved,
        document_type=payload.document_type,
    )
    notification_service.dispatch_email_for_notification(db, notification)
    message = "Documents verified" if user.documents_verified else "Documents rejected"
    return envelope({"user": UserMe.model_validate(user)}, message)
