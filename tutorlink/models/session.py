# tutorlink/models/session.py
from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey, TIMESTAMP, JSON, CheckConstraint, UniqueConstraint, func,
)
from sqlalchemy.orm import relationship

from tutorlink.database import Base

SESSION_STATUSES = ("scheduled", "active", "completed", "cancelled")
OPEN_STATUSES = ("scheduled", "active")
TERMINAL_STATUSES = ("completed", "cancelled")


class Session(Base):
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    mentor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    request_id = Column(Integer, ForeignKey("session_requests.id", ondelete="SET NULL"), nullable=True)
    scheduled_at = Column(TIMESTAMP, nullable=False, index=True)
    duration = Column(Integer, nullable=False, default=60)  # minutes
    meet_link = Column(String(500))
    status = Column(String(20), default="scheduled", nullable=False, index=True)

    # Every session is a roster: direct sessions simply have capacity 1
    capacity = Column(Integer, default=1, nullable=False)
    participant_count = Column(Integer, default=0, nullable=False)

    notes = Column(Text)
    materials = Column(JSON, default=list)

    completed_at = Column(TIMESTAMP)
    completed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    completion_notes = Column(Text)
    actual_duration = Column(Integer)
    cancelled_at = Column(TIMESTAMP)
    cancelled_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    cancellation_reason = Column(String(500))

    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, onupdate=func.now())

    __table_args__ = (
        CheckConstraint("duration > 0", name="check_session_duration_positive"),
        CheckConstraint("capacity >= 1", name="check_session_capacity_positive"),
        CheckConstraint("participant_count <= capacity", name="check_session_not_overbooked"),
    )

    mentor = relationship("User", foreign_keys=[mentor_id], back_populates="mentor_sessions")
    request = relationship("SessionRequest", back_populates="session")
    participants = relationship(
        "SessionParticipant",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="SessionParticipant.joined_at",
    )
    reviews = relationship("Review", back_populates="session", cascade="all, delete-orphan")

    @property
    def participant_ids(self) -> list:
        return [p.user_id for p in self.participants]

    @property
    def is_group(self) -> bool:
        return (self.capacity or 1) > 1

    @property
    def is_full(self) -> bool:
        return (self.participant_count or 0) >= (self.capacity or 1)

    def is_participant(self, user_id: int) -> bool:
        """Mentor or an attached student."""
        return user_id == self.mentor_id or user_id in self.participant_ids


class SessionParticipant(Base):
    __tablename__ = "session_participants"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    joined_at = Column(TIMESTAMP, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("session_id", "user_id", name="uq_session_participant"),
    )

    session = relationship("Session", back_populates="participants")
    user = relationship("User", back_populates="participations")
