"""
Tool: Meet Service
Purpose: Create, update, and query meets for an organizer

Every create/update runs the same steps and stops at the first failure:

    1. required fields      -> ValidationError
    2. time window          -> ValidationError
    3. organizer identity   -> AuthorizationError
    4. existing meet        -> NotFoundError        } updates only
    5. ownership            -> AuthorizationError   }
    6. conflict check       -> ConflictError        } one atomic section
    7. persist              -> InfrastructureError  }

Validation and conflicts are caller outcomes. Storage failures propagate as
InfrastructureError and are never retried here.

Usage:
    service = MeetService(SQLiteMeetRepository(db_path))
    meet = service.create(MeetRequest(title="Intro", start=..., end=...), user)
    days = service.get_availability(None, user, "2025-09-01", "2025-09-07")
"""

import uuid as uuid_lib
from collections.abc import Iterable

from meet.auth.models import AuthenticatedUser, Role
from meet.logging_config import get_logger

from . import CONFLICT_MESSAGE, DEFAULT_WINDOW_DAYS, NOT_FOUND_MESSAGE
from .availability import aggregate, sorted_dates
from .conflicts import find_conflicts
from .errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from .models import DateSlot, Meet, MeetQueryOptions, MeetRequest
from .organizer import DEFAULT_ELEVATED_ROLES, resolve_organizer
from .repository import MeetRepository
from .timewindow import default_window, parse_date, parse_window, shift_date, validate_ordering

logger = get_logger(__name__)


def validate_request(request: MeetRequest | None, uuid: str | None = None, require_uuid: bool = False) -> None:
    """
    Check required fields.

    Precedence: payload, uuid (updates only), title, start, end. Only the
    first missing field is reported.
    """
    if request is None:
        raise ValidationError("data is required")
    if require_uuid and not uuid:
        raise ValidationError("UUID is required")
    if not request.title:
        raise ValidationError("title is required")
    if not request.start:
        raise ValidationError("start time is required")
    if not request.end:
        raise ValidationError("end time is required")


class MeetService:
    """Scheduling use cases over a MeetRepository."""

    def __init__(
        self,
        repository: MeetRepository,
        elevated_roles: Iterable[Role] = DEFAULT_ELEVATED_ROLES,
        timeout: float | None = None,
        window_days: int = DEFAULT_WINDOW_DAYS,
    ):
        self.repository = repository
        self.elevated_roles = frozenset(elevated_roles)
        self.timeout = timeout
        self.window_days = window_days

    def _timeout(self, timeout: float | None) -> float | None:
        return self.timeout if timeout is None else timeout

    def resolve_organizer(self, requested_id: str | None, user: AuthenticatedUser) -> str:
        """Effective organizer for the caller; raises AuthorizationError if none."""
        organizer_id = resolve_organizer(requested_id, user, self.elevated_roles)
        if not organizer_id:
            raise AuthorizationError("organizer identity could not be resolved")
        return organizer_id

    def _build_meet(self, request: MeetRequest, user: AuthenticatedUser, meet_uuid: str) -> Meet:
        start, end = parse_window(request.start, request.end)
        validate_ordering(start, end)
        organizer_id = self.resolve_organizer(request.organizer_id, user)

        return Meet(
            uuid=meet_uuid,
            title=request.title,
            organizer_id=organizer_id,
            participants=list(request.participants or []),
            start=start,
            end=end,
            description=request.description,
            color=request.color,
            type=request.type,
            old_price=request.old_price,
            discount=request.discount,
            price=request.price,
        )

    # -------------------------------------------------------------------------
    # Create / Update
    # -------------------------------------------------------------------------

    def create(
        self,
        request: MeetRequest | None,
        user: AuthenticatedUser,
        timeout: float | None = None,
    ) -> Meet:
        """Book a new meet on the resolved organizer's calendar."""
        validate_request(request)
        meet = self._build_meet(request, user, str(uuid_lib.uuid4()))
        log = logger.bind(organizer_id=meet.organizer_id, uuid=meet.uuid)

        with self.repository.atomic(meet.organizer_id, timeout=self._timeout(timeout)):
            if self.repository.has_conflict(meet.organizer_id, meet.start, meet.end):
                log.info("meet_conflict", start=meet.start.isoformat(), end=meet.end.isoformat())
                raise ConflictError(CONFLICT_MESSAGE)
            created = self.repository.create(meet)

        log.info("meet_created", id=created.id)
        return created

    def update(
        self,
        uuid: str | None,
        request: MeetRequest | None,
        user: AuthenticatedUser,
        timeout: float | None = None,
    ) -> Meet:
        """
        Move or edit an existing meet. It never conflicts with itself.

        Only the meet's own organizer may change it. An elevated caller may
        edit anyone's meet; without an organizer override the meet stays on
        its current calendar, with one it moves to the named calendar.

        Raises:
            NotFoundError: no meet has this uuid
            AuthorizationError: the meet belongs to another organizer
        """
        validate_request(request, uuid=uuid, require_uuid=True)
        meet = self._build_meet(request, user, uuid)
        elevated = user.has_any_role(self.elevated_roles)
        timeout = self._timeout(timeout)

        current = self.repository.get_by_uuid(uuid, timeout=timeout)
        if current is None:
            raise NotFoundError(NOT_FOUND_MESSAGE)
        keep_calendar = elevated and not request.organizer_id
        if keep_calendar:
            meet.organizer_id = current.organizer_id

        # The row is read again under the write lock; the first read only
        # picks which calendars to lock.
        with self.repository.atomic(current.organizer_id, meet.organizer_id, timeout=timeout):
            current = self.repository.get_by_uuid(uuid, timeout=timeout)
            if current is None:
                raise NotFoundError(NOT_FOUND_MESSAGE)
            if keep_calendar:
                meet.organizer_id = current.organizer_id
            self._check_owner(current, meet, elevated)

            log = logger.bind(organizer_id=meet.organizer_id, uuid=meet.uuid)
            if self.repository.has_conflict(meet.organizer_id, meet.start, meet.end, exclude_uuid=uuid):
                log.info("meet_conflict", start=meet.start.isoformat(), end=meet.end.isoformat())
                raise ConflictError(CONFLICT_MESSAGE)
            updated = self.repository.update(meet)

        if updated is None:
            raise NotFoundError(NOT_FOUND_MESSAGE)

        if updated.organizer_id != current.organizer_id:
            log.info("meet_moved", id=updated.id, from_organizer=current.organizer_id)
        log.info("meet_updated", id=updated.id)
        return updated

    @staticmethod
    def _check_owner(current: Meet, meet: Meet, elevated: bool) -> None:
        if current.organizer_id == meet.organizer_id or elevated:
            return
        logger.warning(
            "meet_update_denied",
            uuid=current.uuid,
            owner=current.organizer_id,
            organizer_id=meet.organizer_id,
        )
        raise AuthorizationError("meet belongs to another organizer")

    # -------------------------------------------------------------------------
    # Passthroughs
    # -------------------------------------------------------------------------

    def get_by_id(self, meet_id: str, timeout: float | None = None) -> Meet:
        meet = self.repository.get_by_id(meet_id, timeout=self._timeout(timeout))
        if meet is None:
            raise NotFoundError(NOT_FOUND_MESSAGE)
        return meet

    def delete(self, meet_id: str, timeout: float | None = None) -> None:
        if not self.repository.delete(meet_id, timeout=self._timeout(timeout)):
            raise NotFoundError(NOT_FOUND_MESSAGE)
        logger.info("meet_deleted", id=meet_id)

    def query_meets(self, options: MeetQueryOptions, timeout: float | None = None) -> list[Meet]:
        return self.repository.query_meets(options, timeout=self._timeout(timeout))

    def list_for(
        self,
        organizer_override: str | None,
        user: AuthenticatedUser,
        timeout: float | None = None,
    ) -> list[Meet]:
        """All meets on the resolved organizer's calendar."""
        organizer_id = self.resolve_organizer(organizer_override, user)
        return self.query_meets(MeetQueryOptions(organizer_id=organizer_id), timeout=timeout)

    # -------------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------------

    def get_availability(
        self,
        organizer_override: str | None,
        user: AuthenticatedUser,
        start: str | None = None,
        end: str | None = None,
        timeout: float | None = None,
    ) -> list[DateSlot]:
        """
        Occupancy report for a range of calendar dates.

        Args:
            organizer_override: Organizer to report on (elevated callers only)
            user: Authenticated caller
            start: First date, YYYY-MM-DD (default: today, UTC)
            end: Last date, inclusive (default: start + window_days)

        Returns:
            DateSlots in date order; dates without meets are omitted
        """
        organizer_id = self.resolve_organizer(organizer_override, user)

        window_start, window_end = default_window(days=self.window_days)
        if start:
            window_start = parse_date(start, "from")
            window_end = shift_date(window_start, self.window_days, "from")
        if end:
            window_end = parse_date(end, "to")
        if window_start > window_end:
            raise ValidationError("from date must not be after to date")

        # The last date is inclusive
        meets = self.repository.generate_occupying_slots(
            organizer_id,
            window_start,
            shift_date(window_end, 1, "to" if end else "from"),
            timeout=self._timeout(timeout),
        )
        return sorted_dates(aggregate(meets))

    def conflicts_for(
        self,
        organizer_override: str | None,
        user: AuthenticatedUser,
        start: str,
        end: str,
        exclude_uuid: str | None = None,
        timeout: float | None = None,
    ) -> list[Meet]:
        """Meets that would block booking [start, end) for the organizer."""
        window_start, window_end = parse_window(start, end)
        validate_ordering(window_start, window_end)
        organizer_id = self.resolve_organizer(organizer_override, user)

        occupying = self.repository.generate_occupying_slots(
            organizer_id, window_start, window_end, timeout=self._timeout(timeout)
        )
        return find_conflicts(window_start, window_end, occupying, exclude_uuid=exclude_uuid)
