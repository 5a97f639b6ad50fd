"""
Organizer resolution.

Decides whose calendar a request acts on. Callers holding an elevated role
may name another organizer; everyone else always acts on their own calendar.
"""

from collections.abc import Iterable

from meet.auth.models import AuthenticatedUser, Role

DEFAULT_ELEVATED_ROLES: frozenset[Role] = frozenset({Role.PROGRAMMER})


def resolve_organizer(
    requested_id: str | None,
    user: AuthenticatedUser,
    elevated_roles: Iterable[Role] = DEFAULT_ELEVATED_ROLES,
) -> str:
    """
    Return the effective organizer id for a request.

    An elevated caller's requested id is honored verbatim, whitespace
    included. When no id results (non-elevated caller, or an elevated caller
    who passed None or "") the caller's own uuid is used. An empty return
    value means the caller has no usable identity.
    """
    organizer_id = ""
    if user.has_any_role(elevated_roles):
        organizer_id = requested_id or ""

    if not organizer_id:
        organizer_id = user.uuid

    return organizer_id
