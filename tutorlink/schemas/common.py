from typing import Any, Dict, Optional

from pydantic import BaseModel


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ApiResponse(BaseModel):
    success: bool = True
    message: str = "OK"
    data: Optional[Any] = None


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errors: Optional[Any] = None


def envelope(data: Any = None, message: str = "OK") -> Dict[str, Any]:
    """Wrap a payload in the ``{success, message, data}`` shape every route returns."""
    return {"success": True, "message": message, "data": data}
