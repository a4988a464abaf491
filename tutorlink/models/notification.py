from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, TIMESTAMP, JSON, Index, func
from sqlalchemy.orm import relationship

from tutorlink.database import Base

NOTIFICATION_TYPES = (
    "session_request",
    "session_approved",
    "session_rejected",
    "session_reminder",
    "session_notification",
    "session_confirmation",
    "session_joined",
    "session_completed",
    "session_cancelled",
    "document_approved",
    "document_rejected",
    "review_received",
    "message_received",
    "account_approved",
    "account_rejected",
)

RELATED_MODELS = ("Session", "SessionRequest", "Review", "Message", "User")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    type = Column(String(50), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    message = Column(String(500), nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    related_id = Column(Integer, nullable=True)
    related_model = Column(String(30), nullable=True)
    # "metadata" is reserved on declarative classes
    payload = Column("metadata", JSON, default=dict)
    created_at = Column(TIMESTAMP, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_notifications_recipient_unread", "recipient_id", "is_read"),
        Index("ix_notifications_related", "related_model", "related_id", "type"),
    )

    recipient = relationship("User", foreign_keys=[recipient_id])
    sender = relationship("User", foreign_keys=[sender_id])
