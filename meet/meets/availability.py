"""
Availability aggregation.

Turns the meets occupying a window into an occupancy report: one DateSlot
per UTC calendar date, each holding the occupied time slots of that date in
ascending order. Free time is whatever the report does not list.
"""

from datetime import timezone

from . import DATE_FORMAT, DATE_LABEL_FORMAT, TIME_FORMAT
from .models import DateSlot, Meet, TimeSlot


def to_time_slot(meet: Meet) -> TimeSlot:
    start = meet.start.astimezone(timezone.utc)
    end = meet.end.astimezone(timezone.utc)
    return TimeSlot(
        start=start.strftime(TIME_FORMAT),
        end=end.strftime(TIME_FORMAT),
        duration=f"{meet.duration_minutes}m",
    )


def aggregate(meets: list[Meet]) -> dict[str, DateSlot]:
    """
    Group meets by the UTC date they start on.

    A meet that began before the report window but still overlaps it is listed
    under its own start date, which can precede the window's first date.

    Input order does not matter: meets are ordered by (start, end, uuid)
    first, so each date's title is taken from its earliest meet.

    Returns:
        dict mapping YYYY-MM-DD to DateSlot
    """
    dates: dict[str, DateSlot] = {}

    for meet in sorted(meets, key=lambda m: (m.start, m.end, m.uuid)):
        start = meet.start.astimezone(timezone.utc)
        key = start.strftime(DATE_FORMAT)

        slot = dates.get(key)
        if slot is None:
            slot = DateSlot(
                value=key,
                title=meet.title,
                label=start.strftime(DATE_LABEL_FORMAT),
            )
            dates[key] = slot

        slot.times.append(to_time_slot(meet))

    # Zero-padded HH:MM sorts chronologically
    for slot in dates.values():
        slot.times.sort(key=lambda t: t.start)

    return dates


def sorted_dates(dates: dict[str, DateSlot]) -> list[DateSlot]:
    """DateSlots in ascending date order."""
    return [dates[key] for key in sorted(dates)]
