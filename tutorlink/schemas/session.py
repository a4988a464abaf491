from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# ======================
# SESSION INPUT MODELS
# ======================

class OpenSessionCreate(BaseModel):
    """Mentor-published session form. Presence checks happen in the service."""
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None  # YYYY-MM-DD
    time: Optional[str] = None  # HH:MM
    duration: Optional[int] = None
    meet_link: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("meet_link", "google_meet_link", "googleMeetLink"),
    )
    capacity: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("capacity", "max_participants", "maxParticipants"),
    )
    notes: Optional[str] = Field(None, max_length=2000)
    materials: List[str] = Field(default_factory=list, max_length=20)


class SessionComplete(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)
    actual_duration: Optional[int] = Field(
        None,
        ge=1,
        validation_alias=AliasChoices("actual_duration", "actualDuration"),
    )


class SessionCancel(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


# ======================
# SESSION RESPONSE MODELS
# ======================

class SessionResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    mentor_id: int
    mentor_name: Optional[str] = None
    request_id: Optional[int] = None
    scheduled_at: datetime
    duration: int
    meet_link: Optional[str] = None
    status: str
    capacity: int
    participant_count: int
    participant_ids: List[int] = []
    is_group: bool = False
    notes: Optional[str] = None
    materials: List[str] = []
    completed_at: Optional[datetime] = None
    completed_by: Optional[int] = None
    completion_notes: Optional[str] = None
    actual_duration: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_model(cls, s) -> "SessionResponse":
        return cls(
            id=s.id,
            title=s.title,
            description=s.description,
            mentor_id=s.mentor_id,
            mentor_name=s.mentor.name if s.mentor else None,
            request_id=s.request_id,
            scheduled_at=s.scheduled_at,
            duration=s.duration,
            meet_link=s.meet_link,
            status=s.status,
            capacity=s.capacity,
            participant_count=s.participant_count,
            participant_ids=s.participant_ids,
            is_group=s.is_group,
            notes=s.notes,
            materials=s.materials or [],
            completed_at=s.completed_at,
            completed_by=s.completed_by,
            completion_notes=s.completion_notes,
            actual_duration=s.actual_duration,
            cancelled_at=s.cancelled_at,
            cancelled_by=s.cancelled_by,
            cancellation_reason=s.cancellation_reason,
            created_at=s.created_at,
        )


class FanOutSummary(BaseModel):
    students_notified: int
    notifications_sent: int = 0
    notifications_queued: int = 0
