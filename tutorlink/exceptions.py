"""
Domain error hierarchy.

Services raise these; the handlers installed in ``tutorlink.main`` turn them
into ``{"success": false, "message": ..., "errors": ...}`` responses.
"""

from typing import Any, Optional


class TutorLinkError(Exception):
    """Base class for every error a client is allowed to see."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None, *, errors: Optional[Any] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(TutorLinkError):
    status_code = 400
    default_message = "Validation errors"


class AuthError(TutorLinkError):
    status_code = 401
    default_message = "Not authorized"


class AuthorizationError(TutorLinkError):
    status_code = 403
    default_message = "Access denied"


class NotFoundError(TutorLinkError):
    status_code = 404
    default_message = "Not found"


class ConflictError(TutorLinkError):
    status_code = 400
    default_message = "Conflict"


class InvalidStateError(TutorLinkError):
    status_code = 400
    default_message = "Invalid state transition"


class CapacityError(TutorLinkError):
    status_code = 400
    default_message = "Session is full"


class ServerError(TutorLinkError):
    status_code = 500
    default_message = "Server error"
