"""Timestamp parsing and ISO-8601 serialization helpers."""

from datetime import date, datetime, time, timezone
from typing import Annotated, Any, Optional

from pydantic import PlainSerializer


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and normalize aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso_string(value: datetime) -> str:
    """Render a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    value = ensure_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_datetime_input(value: Any) -> Optional[datetime]:
    """
    Parse a user supplied date or datetime.

    Accepts ``datetime``/``date`` objects and ISO-8601 strings, including
    date-only strings (midnight UTC) and a trailing ``Z``. Raises ValueError
    for anything unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if not isinstance(value, str):
        raise ValueError("must be an ISO-8601 date string")

    text = value.strip()
    if not text:
        raise ValueError("must be an ISO-8601 date string")
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        if len(text) == 10:
            return datetime.combine(date.fromisoformat(text), time.min, tzinfo=timezone.utc)
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        raise ValueError("must be a valid ISO-8601 date string") from None


IsoDateTime = Annotated[datetime, PlainSerializer(to_iso_string, return_type=str)]
