# tutorlink/models/session_request.py
from sqlalchemy import (
    Column, Integer, String, Text, Float, ForeignKey, TIMESTAMP, JSON, Index, CheckConstraint, func, text,
)
from sqlalchemy.orm import relationship

from tutorlink.database import Base

REQUEST_STATUSES = ("pending", "accepted", "rejected")


class SessionRequest(Base):
    __tablename__ = "session_requests"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    mentor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subject = Column(String(200), nullable=False)
    description = Column(Text)
    duration = Column(Integer, nullable=False)  # minutes
    preferred_times = Column(JSON, default=list, nullable=False)
    status = Column(String(20), default="pending", nullable=False, index=True)
    response_message = Column(String(500))
    proposed_price = Column(Float)
    scheduled_date = Column(TIMESTAMP)
    responded_at = Column(TIMESTAMP)
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, onupdate=func.now())

    __table_args__ = (
        CheckConstraint("duration > 0", name="check_request_duration_positive"),
        # One pending request per (student, mentor) pair
        Index(
            "uq_session_requests_pending_pair",
            "student_id",
            "mentor_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    student = relationship("User", foreign_keys=[student_id])
    mentor = relationship("User", foreign_keys=[mentor_id])
    # Direct session created on accept
    session = relationship("Session", back_populates="request", uselist=False)
