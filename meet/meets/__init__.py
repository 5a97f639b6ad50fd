"""Meets - Scheduling engine for organizer calendars

Components:
    timewindow.py: Parse and validate start/end timestamps, default windows
    organizer.py: Decide whose calendar a request acts on
    repository.py: Persistence (conflict checks, occupying meets, CRUD)
    availability.py: Group occupying meets into per-day time slots
    service.py: Create/update/query use cases

Invariants:
    - start < end for every stored meet
    - [s, e) and [start, end) conflict iff s < end and e > start
    - the conflict check and the write happen in one atomic section
"""

# Messages surfaced to callers
CONFLICT_MESSAGE = "appointment conflict for this organizer and period"
NOT_FOUND_MESSAGE = "meet not found"

# Formats used by availability views
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"
DATE_LABEL_FORMAT = "%a %b %d, %Y"

# Days after the start date covered when no end bound is given
DEFAULT_WINDOW_DAYS = 6

__all__ = [
    "CONFLICT_MESSAGE",
    "NOT_FOUND_MESSAGE",
    "DATE_FORMAT",
    "TIME_FORMAT",
    "DATE_LABEL_FORMAT",
    "DEFAULT_WINDOW_DAYS",
]
