"""
Time window parsing for meets.

Timestamps arrive as RFC 3339 strings ("2025-09-03T10:00:00Z",
"2025-09-03T12:00:00+02:00") and are normalized to UTC. A timestamp without
an offset is ambiguous and rejected as malformed.

Availability bounds are calendar dates ("2025-09-03"), interpreted as UTC
midnight.
"""

from datetime import date, datetime, time, timedelta, timezone

from . import DATE_FORMAT, DEFAULT_WINDOW_DAYS
from .errors import ValidationError


def parse_timestamp(value: str) -> datetime | None:
    """Parse an RFC 3339 timestamp into an aware UTC datetime, or None."""
    if not value or "T" not in value.upper():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
        if parsed.tzinfo is None or parsed.utcoffset() is None:
            return None
        # Offsets can push the UTC instant past year 1 or 9999
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def parse_window(start: str, end: str) -> tuple[datetime, datetime]:
    """
    Parse a start/end pair.

    The start side is checked first. Ordering is not enforced here; callers
    that persist the window must also call validate_ordering.

    Raises:
        ValidationError: "invalid start time format" / "invalid end time format"
    """
    start_time = parse_timestamp(start)
    if start_time is None:
        raise ValidationError("invalid start time format")

    end_time = parse_timestamp(end)
    if end_time is None:
        raise ValidationError("invalid end time format")

    return start_time, end_time


def validate_ordering(start: datetime, end: datetime) -> None:
    if start >= end:
        raise ValidationError("end time must be after start time")


def parse_date(value: str, side: str) -> datetime:
    """
    Parse a YYYY-MM-DD bound into UTC midnight of that date.

    Args:
        value: Date string
        side: "from" or "to", used in the error message
    """
    try:
        day = datetime.strptime(value.strip(), DATE_FORMAT).date()
    except (AttributeError, ValueError, OverflowError):
        raise ValidationError(f"invalid {side} date format") from None
    return start_of_day(day)


def shift_date(bound: datetime, days: int, side: str) -> datetime:
    """Move a date bound by whole days; running off the calendar is a ValidationError."""
    try:
        return bound + timedelta(days=days)
    except OverflowError:
        raise ValidationError(f"invalid {side} date format") from None


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def default_window(now: datetime | None = None, days: int = DEFAULT_WINDOW_DAYS) -> tuple[datetime, datetime]:
    """
    Default availability window.

    `from` is midnight UTC of the current day and `to` is `days` days later,
    so with the default of 6 the window spans seven calendar dates.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    start = start_of_day(now.astimezone(timezone.utc).date())
    return start, start + timedelta(days=days)
