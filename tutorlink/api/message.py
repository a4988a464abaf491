from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from tutorlink import models
from tutorlink.config import settings
from tutorlink.database import get_db
from tutorlink.schemas import MessageCreate, MessageResponse, envelope
from tutorlink.services import message_service, notification_service
from tutorlink.utils.pagination import paginate
from tutorlink.utils.security import require_approved

router = APIRouter(prefix="/messages", tags=["Messages"])


@router.post("", status_code=status.HTTP_201_CREATED)
def send_message(
    payload: MessageCreate,
    current_user: models.User = Depends(require_approved),
    db: Session = Depends(get_db),
):
    message, notification = message_service.send_message(
        db,
        sender=current_user,
        receiver_id=payload.receiver_id,
        content=payload.content,
        session_id=payload.session_id,
    )
    notification_service.dispatch_email_for_notification(db, notification)
    return envelope({"message": MessageResponse.model_validate(message)}, "Message sent successfully")


@router.get("/conversations")
def list_conversations(
    current_user: models.User = Depends(require_approved),
    db: Session = Depends(get_db),
):
    """Latest message of every conversation the caller is part of."""
    latest = message_service.conversations(db, user=current_user)
    return envelope({
        "conversations": [
            {
                "conversation_id": m.conversation_id,
                "other_user_id": m.receiver_id if m.sender_id == current_user.id else m.sender_id,
                "last_message": MessageResponse.model_validate(m),
            }
            for m in latest
        ],
        "unread_count": message_service.unread_count(db, user=current_user),
    })


@router.get("/conversation/{user_id}")
def get_conversation(
    user_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    current_user: models.User = Depends(require_approved),
    db: Session = Depends(get_db),
):
    query = message_service.conversation_query(db, user=current_user, other_user_id=user_id)
    messages, pagination = paginate(query, page, limit)
    return envelope({
        "messages": [MessageResponse.model_validate(m) for m in messages],
        "pagination": pagination,
    })


@router.patch("/{message_id}/read")
def mark_message_read(
    message_id: int,
    current_user: models.User = Depends(require_approved),
    db: Session = Depends(get_db),
):
    message = message_service.mark_message_read(db, message_id=message_id, user=current_user)
    return envelope({"message": MessageResponse.model_validate(message)}, "Message marked as read")
