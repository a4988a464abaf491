import math
from typing import Any, Dict, List, Tuple

from sqlalchemy.orm import Query

from tutorlink.config import settings
from tutorlink.schemas.common import Pagination


def normalize_page(page: int, limit: int) -> Tuple[int, int]:
    page = max(int(page or 1), 1)
    limit = int(limit or settings.DEFAULT_PAGE_SIZE)
    limit = min(max(limit, 1), settings.MAX_PAGE_SIZE)
    return page, limit


def paginate(query: Query, page: int, limit: int) -> Tuple[List[Any], Dict[str, int]]:
    """Run ``query`` for one page and return ``(rows, pagination)``."""
    page, limit = normalize_page(page, limit)
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    pagination = Pagination(
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit) if total else 0,
    )
    return rows, pagination.model_dump()
