# tutorlink/api/__init__.py
# This file makes the api directory a Python package.

from . import admin
from . import auth
from . import message
from . import notification
from . import review
from . import session
from . import session_notification
from . import session_request
from . import users

__all__ = [
    "auth",
    "users",
    "admin",
    "session_request",
    "session_notification",
    "session",
    "review",
    "notification",
    "message",
]
