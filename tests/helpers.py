"""Builders shared by unit and integration tests."""

from datetime import datetime, timezone

from meet.meets.models import Meet, MeetRequest


def utc(*args) -> datetime:
    """datetime(*args) in UTC."""
    return datetime(*args, tzinfo=timezone.utc)


def make_request(
    start: str = "2025-09-03T10:00:00Z",
    end: str = "2025-09-03T11:00:00Z",
    title: str = "Intro call",
    **fields,
) -> MeetRequest:
    return MeetRequest(title=title, start=start, end=end, **fields)


def make_meet(
    start: datetime,
    end: datetime,
    organizer_id: str = "org-1",
    uuid: str = "",
    title: str = "Intro call",
) -> Meet:
    return Meet(title=title, organizer_id=organizer_id, start=start, end=end, uuid=uuid)


# Gateway identity headers for standard callers
ORGANIZER_HEADERS = {"x-user-id": "1", "x-user-uuid": "org-1", "x-user-roles": "Organizer"}
OTHER_ORGANIZER_HEADERS = {"x-user-id": "2", "x-user-uuid": "org-2", "x-user-roles": "Organizer"}
PROGRAMMER_HEADERS = {"x-user-id": "9", "x-user-uuid": "prog-9", "x-user-roles": "Programmer"}
