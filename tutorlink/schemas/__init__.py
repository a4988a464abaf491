# tutorlink/schemas/__init__.py

from .common import ApiResponse, ErrorResponse, Pagination, envelope
from .auth import Token, TokenData, RegisterRequest, LoginRequest
from .user import UserPublic, UserMe, AccountRejection, DocumentVerification
from .session_request import (
    SessionRequestCreate,
    SessionRequestAccept,
    SessionRequestReject,
    SessionRequestResponse,
)
from .session import (
    OpenSessionCreate,
    SessionComplete,
    SessionCancel,
    SessionResponse,
    FanOutSummary,
)
from .review import ReviewCreate, ReviewUpdate, ReviewResponse, RatingSummary
from .notification import NotificationResponse, LegacyMessage
from .message import MessageCreate, MessageResponse

__all__ = [
    "ApiResponse",
    "ErrorResponse",
    "Pagination",
    "envelope",
    "Token",
    "TokenData",
    "RegisterRequest",
    "LoginRequest",
    "UserPublic",
    "UserMe",
    "AccountRejection",
    "DocumentVerification",
    "SessionRequestCreate",
    "SessionRequestAccept",
    "SessionRequestReject",
    "SessionRequestResponse",
    "OpenSessionCreate",
    "SessionComplete",
    "SessionCancel",
    "SessionResponse",
    "FanOutSummary",
    "ReviewCreate",
    "ReviewUpdate",
    "ReviewResponse",
    "RatingSummary",
    "NotificationResponse",
    "LegacyMessage",
    "MessageCreate",
    "MessageResponse",
]
