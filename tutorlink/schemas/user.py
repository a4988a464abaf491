from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class UserPublic(BaseModel):
    id: int
    name: str
    role: str
    bio: Optional[str] = None
    rating: float = 0.0
    total_reviews: int = 0

    model_config = ConfigDict(from_attributes=True)


class UserMe(UserPublic):
    email: str
    is_active: bool
    is_approved: bool
    documents_verified: bool
    created_at: Optional[datetime] = None


class AccountRejection(BaseModel):
    reason: Optional[str] = None


class DocumentVerification(BaseModel):
    approved: bool = True
    document_type: str = "verification"
