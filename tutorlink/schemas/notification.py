from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class NotificationResponse(BaseModel):
    id: int
    recipient_id: int
    sender_id: Optional[int] = None
    type: str
    title: str
    message: str
    is_read: bool
    related_id: Optional[int] = None
    related_model: Optional[str] = None
    metadata: Dict[str, Any] = {}
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_model(cls, n) -> "NotificationResponse":
        return cls(
            id=n.id,
            recipient_id=n.recipient_id,
            sender_id=n.sender_id,
            type=n.type,
            title=n.title,
            message=n.message,
            is_read=n.is_read,
            related_id=n.related_id,
            related_model=n.related_model,
            metadata=n.payload or {},
            created_at=n.created_at,
        )


class LegacyMessage(BaseModel):
    """Message-shaped view of a notification for older dashboard clients."""
    id: int
    sender: Optional[int] = None
    receiver: int
    content: str
    message_type: str
    session_id: Optional[int] = None
    is_read: bool
    sent_at: Optional[datetime] = None
