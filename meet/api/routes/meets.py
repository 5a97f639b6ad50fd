"""
Meets Route - Booking and availability endpoints

Provides endpoints for an organizer's calendar:
- Create and update meets (conflict-checked)
- List, get, and delete meets
- Occupancy report for a date range
- Meets blocking a proposed period

Engine errors (ValidationError, ConflictError, ...) propagate to the
application's exception handlers, which map them to status codes.
"""

from fastapi import APIRouter, Depends, Query, Response, status

from meet.api.dependencies import get_current_user, get_service
from meet.api.schemas import (
    AvailabilityResponse,
    ConflictsResponse,
    DateSlotOut,
    MeetBody,
    MeetListResponse,
    MeetOut,
    MeetResponse,
)
from meet.auth.models import AuthenticatedUser
from meet.logging_config import bind_request_context
from meet.meets.service import MeetService

router = APIRouter()


@router.post("", response_model=MeetResponse, status_code=status.HTTP_201_CREATED)
def create_meet(
    body: MeetBody,
    user: AuthenticatedUser = Depends(get_current_user),
    service: MeetService = Depends(get_service),
):
    """Book a meet. 409 if the organizer is already busy in the period."""
    request = body.meet.to_request() if body.meet is not None else None
    meet = service.create(request, user)
    return MeetResponse(meet=MeetOut.from_meet(meet))


# =============================================================================
# Collection views (must be before /{meet_id} to avoid route conflict)
# =============================================================================


@router.get("", response_model=MeetListResponse)
def list_meets(
    organizer_id: str | None = Query(None, description="Organizer (elevated roles only)"),
    user: AuthenticatedUser = Depends(get_current_user),
    service: MeetService = Depends(get_service),
):
    """All meets on an organizer's calendar, ordered by start time."""
    meets = service.list_for(organizer_id, user)
    return MeetListResponse(meets=[MeetOut.from_meet(m) for m in meets])


@router.get("/availability", response_model=AvailabilityResponse)
def get_availability(
    uuid: str | None = Query(None, description="Organizer (elevated roles only)"),
    from_date: str | None = Query(None, alias="from", description="First date, YYYY-MM-DD"),
    to_date: str | None = Query(None, alias="to", description="Last date, YYYY-MM-DD, inclusive"),
    user: AuthenticatedUser = Depends(get_current_user),
    service: MeetService = Depends(get_service),
):
    """
    Occupied time per date.

    Defaults to today (UTC) through six days later. Dates without meets are
    omitted.
    """
    bind_request_context(organizer_id=uuid)
    dates = service.get_availability(uuid, user, from_date, to_date)
    return AvailabilityResponse(dates=[DateSlotOut.from_slot(d) for d in dates])


@router.get("/conflicts", response_model=ConflictsResponse)
def get_conflicts(
    start: str = Query(..., description="Proposed start, RFC 3339"),
    end: str = Query(..., description="Proposed end, RFC 3339"),
    organizer_id: str | None = Query(None, description="Organizer (elevated roles only)"),
    exclude_uuid: str | None = Query(None, description="Meet being moved"),
    user: AuthenticatedUser = Depends(get_current_user),
    service: MeetService = Depends(get_service),
):
    """Meets that would block booking the proposed period."""
    conflicts = service.conflicts_for(organizer_id, user, start, end, exclude_uuid=exclude_uuid)
    return ConflictsResponse(conflicts=[MeetOut.from_meet(m) for m in conflicts])


# =============================================================================
# Single meet
# =============================================================================


@router.put("/{uuid}", response_model=MeetResponse)
def update_meet(
    uuid: str,
    body: MeetBody,
    user: AuthenticatedUser = Depends(get_current_user),
    service: MeetService = Depends(get_service),
):
    """Update a meet by uuid. It is never reported as conflicting with itself."""
    bind_request_context(uuid=uuid)
    request = body.meet.to_request() if body.meet is not None else None
    meet = service.update(uuid, request, user)
    return MeetResponse(meet=MeetOut.from_meet(meet))


@router.get("/{meet_id}", response_model=MeetResponse)
def get_meet(
    meet_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: MeetService = Depends(get_service),
):
    meet = service.get_by_id(meet_id)
    return MeetResponse(meet=MeetOut.from_meet(meet))


@router.delete("/{meet_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_meet(
    meet_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: MeetService = Depends(get_service),
):
    service.delete(meet_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
