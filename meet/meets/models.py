"""
Tool: Meet Models
Purpose: Data structures for meets, query options, and availability views

Usage:
    from meet.meets.models import Meet, MeetRequest, MeetQueryOptions, DateSlot, TimeSlot

Meet is the stored entity. MeetRequest is the unvalidated create/update
intent as it arrives from a transport. DateSlot and TimeSlot are derived,
read-only views rebuilt on every availability query.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass
class Meet:
    """
    A scheduled meeting on an organizer's calendar.

    `id` is assigned by storage; `uuid` is assigned once at creation and is
    the public handle used for updates and conflict exclusion.
    """

    title: str
    organizer_id: str
    start: datetime
    end: datetime
    id: str = ""
    uuid: str = ""
    participants: list[str] = field(default_factory=list)
    description: str = ""
    color: str = ""

    # Categorization
    type: int = 0
    old_price: float = 0.0
    discount: float = 0.0
    price: float = 0.0

    @property
    def duration_minutes(self) -> int:
        """Whole minutes between start and end."""
        delta = self.end - self.start
        return int(delta.total_seconds() // 60)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "uuid": self.uuid,
            "title": self.title,
            "organizer_id": self.organizer_id,
            "participants": list(self.participants),
            "start_time": self.start.astimezone(timezone.utc).isoformat(),
            "end_time": self.end.astimezone(timezone.utc).isoformat(),
            "description": self.description,
            "color": self.color,
            "type": self.type,
            "old_price": self.old_price,
            "discount": self.discount,
            "price": self.price,
        }


@dataclass
class MeetRequest:
    """
    Create/update intent before validation.

    Times are raw strings; `organizer_id` is an optional override that only
    elevated callers may use.
    """

    title: str = ""
    start: str = ""
    end: str = ""
    organizer_id: str = ""
    participants: list[str] = field(default_factory=list)
    description: str = ""
    color: str = ""
    type: int = 0
    old_price: float = 0.0
    discount: float = 0.0
    price: float = 0.0


@dataclass
class MeetQueryOptions:
    """
    Query descriptor for listing meets.

    With only_available set, the query returns meets occupying the
    [start, end) range instead of meets fully inside it.
    """

    organizer_id: str
    start: datetime | None = None
    end: datetime | None = None
    only_available: bool = False


@dataclass(frozen=True)
class TimeSlot:
    start: str  # HH:MM
    end: str  # HH:MM
    duration: str  # "<N>m"

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start, "end": self.end, "duration": self.duration}


@dataclass
class DateSlot:
    """Occupied time slots for one UTC calendar date."""

    value: str  # YYYY-MM-DD
    title: str = ""
    label: str = ""
    times: list[TimeSlot] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "label": self.label,
            "title": self.title,
            "times": [t.to_dict() for t in self.times],
        }
