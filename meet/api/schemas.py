"""
Pydantic models for the meet HTTP API.

These models define the JSON request/response bodies. Conversion to and from
the engine's dataclasses lives here so routes stay thin.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from meet.meets.models import DateSlot, Meet, MeetRequest


# =============================================================================
# Meet Models
# =============================================================================


class MeetIn(BaseModel):
    """Meet fields accepted on create and update."""

    title: str = Field(default="", description="Display title (required)")
    start: str = Field(default="", description="Start time, RFC 3339 (required)")
    end: str = Field(default="", description="End time, RFC 3339 (required)")
    organizer_id: str = Field(default="", description="Organizer override (elevated roles only)")
    participants: list[str] = Field(default_factory=list, description="Participant identifiers, ordered")
    description: str = Field(default="", description="Free-form description")
    color: str = Field(default="", description="Display color")
    type: int = Field(default=0, description="Meet category")
    old_price: float = Field(default=0.0, description="Price before discount")
    discount: float = Field(default=0.0, description="Discount")
    price: float = Field(default=0.0, description="Price")

    def to_request(self) -> MeetRequest:
        return MeetRequest(**self.model_dump())


class MeetBody(BaseModel):
    """Create/update envelope: {"meet": {...}}."""

    meet: MeetIn | None = Field(None, description="Meet data")


class MeetOut(BaseModel):
    """A stored meet."""

    id: str = Field(..., description="Storage identifier")
    uuid: str = Field(..., description="Public identifier")
    title: str
    organizer_id: str
    participants: list[str] = Field(default_factory=list)
    start: datetime = Field(..., description="Start time, UTC")
    end: datetime = Field(..., description="End time, UTC")
    description: str = ""
    color: str = ""
    type: int = 0
    old_price: float = 0.0
    discount: float = 0.0
    price: float = 0.0

    @classmethod
    def from_meet(cls, meet: Meet) -> "MeetOut":
        return cls(
            id=meet.id,
            uuid=meet.uuid,
            title=meet.title,
            organizer_id=meet.organizer_id,
            participants=meet.participants,
            start=meet.start,
            end=meet.end,
            description=meet.description,
            color=meet.color,
            type=meet.type,
            old_price=meet.old_price,
            discount=meet.discount,
            price=meet.price,
        )


class ResponseStatus(BaseModel):
    code: int = Field(default=0, description="0 on success")
    message: str = Field(default="success")


class MeetResponse(BaseModel):
    """Single meet response."""

    status: ResponseStatus = Field(default_factory=ResponseStatus)
    meet: MeetOut


class MeetListResponse(BaseModel):
    meets: list[MeetOut] = Field(default_factory=list)


class ConflictsResponse(BaseModel):
    """Meets blocking a proposed period."""

    conflicts: list[MeetOut] = Field(default_factory=list)


# =============================================================================
# Availability Models
# =============================================================================


class TimeSlotOut(BaseModel):
    start: str = Field(..., description="HH:MM, UTC")
    end: str = Field(..., description="HH:MM, UTC")
    duration: str = Field(..., description="Minutes, e.g. '60m'")


class DateSlotOut(BaseModel):
    value: str = Field(..., description="Date, YYYY-MM-DD")
    label: str = Field(..., description="Display label, e.g. 'Wed Sep 03, 2025'")
    title: str = Field(default="", description="Title of the day's earliest meet")
    times: list[TimeSlotOut] = Field(default_factory=list)

    @classmethod
    def from_slot(cls, slot: DateSlot) -> "DateSlotOut":
        return cls.model_validate(slot.to_dict())


class AvailabilityResponse(BaseModel):
    """Occupied slots per date, in date order."""

    dates: list[DateSlotOut] = Field(default_factory=list)


# =============================================================================
# Common Models
# =============================================================================


class HealthCheck(BaseModel):
    status: str = Field(default="healthy", description="Overall service status")
    version: str = Field(default="0.1.0", description="API version")
    timestamp: datetime = Field(default_factory=datetime.now, description="Check timestamp")
    services: dict[str, str] = Field(default_factory=dict, description="Dependency statuses")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Error message")
    code: str = Field(..., description="Error code")
    details: dict[str, Any] | None = Field(None, description="Additional details")
