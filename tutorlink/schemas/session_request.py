from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# ======================
# SESSION REQUEST MODELS
# ======================

class SessionRequestCreate(BaseModel):
    mentor_id: int
    subject: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    duration: int = Field(..., ge=15, le=480, description="Duration in minutes")
    preferred_times: List[datetime] = Field(
        ...,
        min_length=1,
        max_length=5,
        validation_alias=AliasChoices("preferred_times", "preferred_dates"),
    )
    proposed_price: Optional[float] = Field(None, ge=0)

    @field_validator("subject")
    @classmethod
    def strip_subject(cls, v):
        if not v.strip():
            raise ValueError("Subject must be 1-200 characters")
        return v.strip()


class SessionRequestAccept(BaseModel):
    scheduled_date: datetime
    meeting_link: Optional[str] = Field(None, max_length=500)

    @field_validator("meeting_link")
    @classmethod
    def validate_link(cls, v):
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("Meeting link must be a valid URL")
        return v


class SessionRequestReject(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


# ======================
# SESSION REQUEST RESPONSE MODELS
# ======================

class SessionRequestResponse(BaseModel):
    id: int
    student_id: int
    student_name: Optional[str] = None
    mentor_id: int
    mentor_name: Optional[str] = None
    subject: str
    description: Optional[str] = None
    duration: int
    preferred_times: List[str] = []
    status: str
    response_message: Optional[str] = None
    proposed_price: Optional[float] = None
    scheduled_date: Optional[datetime] = None
    session_id: Optional[int] = None
    responded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_model(cls, req) -> "SessionRequestResponse":
        return cls(
            id=req.id,
            student_id=req.student_id,
            student_name=req.student.name if req.student else None,
            mentor_id=req.mentor_id,
            mentor_name=req.mentor.name if req.mentor else None,
            subject=req.subject,
            description=req.description,
            duration=req.duration,
            preferred_times=list(req.preferred_times or []),
            status=req.status,
            response_message=req.response_message,
            proposed_price=req.proposed_price,
            scheduled_date=req.scheduled_date,
            session_id=req.session.id if req.session else None,
            responded_at=req.responded_at,
            created_at=req.created_at,
        )
