from datetime import UTC, datetime
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how TIMESTAMP columns are stored."""
    return datetime.now(UTC).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


def parse_iso(value: str) -> datetime:
    """Parse an ISO 8601 string (``Z`` suffix allowed) into naive UTC."""
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    return as_naive_utc(parsed).replace(microsecond=0)
