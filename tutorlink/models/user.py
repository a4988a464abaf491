from sqlalchemy import Column, Integer, String, Boolean, Float, Text, TIMESTAMP, func
from sqlalchemy.orm import relationship

from tutorlink.database import Base

ROLES = ("student", "mentor", "admin")


# ---------------- USER (DIRECTORY TABLE) ----------------
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
    documents_verified = Column(Boolean, default=False, nullable=False)
    bio = Column(Text)

    # Aggregate recomputed from reviews where this user is the reviewee
    rating = Column(Float, default=0.0, nullable=False)
    total_reviews = Column(Integer, default=0, nullable=False)

    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, onupdate=func.now())

    mentor_sessions = relationship("Session", foreign_keys="Session.mentor_id", back_populates="mentor")
    participations = relationship("SessionParticipant", back_populates="user", cascade="all, delete-orphan")
    reviews_given = relationship("Review", foreign_keys="Review.reviewer_id", back_populates="reviewer")
    reviews_received = relationship("Review", foreign_keys="Review.reviewee_id", back_populates="reviewee")

    @property
    def is_student(self) -> bool:
        return self.role == "student"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
