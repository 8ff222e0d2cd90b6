from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable, List, Optional, Union

# Incoming datetimes can be a date, a datetime, or an ISO8601 string
DateTimeInput = Union[date, datetime, str]


# PUBLIC_INTERFACE
def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so every stored timestamp is comparable."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# PUBLIC_INTERFACE
def parse_datetime(value: Optional[DateTimeInput]) -> Optional[datetime]:
    """
    Normalize datetime input into an aware datetime.
    - If value is a string, parse via datetime.fromisoformat (a trailing 'Z' is accepted);
      if only a date is given, use 00:00.
    - If value is a date (not datetime), convert to datetime at 00:00.
    - Naive results are interpreted as UTC.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return ensure_aware(value)

    if isinstance(value, date):
        # Promote a date to a datetime at midnight
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            return ensure_aware(datetime.fromisoformat(s))
        except ValueError:
            try:
                d = date.fromisoformat(s)
                return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
            except ValueError as e:
                raise ValueError(
                    "Invalid datetime format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00Z')."
                ) from e

    raise ValueError("Invalid type for datetime; expected date, datetime, or ISO8601 string.")


def normalize_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Strip whitespace, drop empty entries and duplicates while keeping first-seen order."""
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = [tags]
    seen: List[str] = []
    for tag in tags:
        t = str(tag).strip()
        if t and t not in seen:
            seen.append(t)
    return seen
