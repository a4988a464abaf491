# tutorlink/models/__init__.py
# Import models in dependency order
from .user import User
from .session_request import SessionRequest
from .session import Session, SessionParticipant
from .review import Review
from .notification import Notification
from .message import Message

__all__ = [
    "User",
    "SessionRequest",
    "Session",
    "SessionParticipant",
    "Review",
    "Notification",
    "Message",
]
