"""
Identity models for authenticated callers.

The identity service returns a JSON user; the gateway forwards the same
identity as x-user-* headers. Both are normalized into AuthenticatedUser.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class Role(StrEnum):
    """Roles understood by the meet service."""

    PROGRAMMER = "Programmer"
    ADMIN = "Admin"
    ORGANIZER = "Organizer"
    USER = "User"


def parse_roles(values: Iterable[str] | str | None) -> frozenset[Role]:
    """
    Convert role names into Role members.

    Accepts a list of names or a comma-separated string. Unknown names are
    dropped.
    """
    if not values:
        return frozenset()
    if isinstance(values, str):
        values = values.split(",")

    roles = set()
    for raw in values:
        name = str(raw).strip()
        if not name:
            continue
        try:
            roles.add(Role(name))
        except ValueError:
            logger.debug(f"Ignoring unknown role: {name}")
    return frozenset(roles)


@dataclass(frozen=True)
class AuthenticatedUser:
    """
    The subject of the current request.

    `uuid` is the stable public identifier used as the default organizer.
    """

    id: str = ""
    uuid: str = ""
    email: str = ""
    roles: frozenset[Role] = field(default_factory=frozenset)
    first_name: str | None = None
    last_name: str | None = None
    mobile: str | None = None

    @property
    def is_anonymous(self) -> bool:
        return not self.id and not self.uuid

    def has_any_role(self, roles: Iterable[Role]) -> bool:
        return not self.roles.isdisjoint(roles)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuthenticatedUser:
        """Create from the identity service's user JSON."""
        return cls(
            id=str(data.get("id") or ""),
            uuid=str(data.get("uuid") or ""),
            email=data.get("email") or "",
            roles=parse_roles(data.get("roles")),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            mobile=data.get("mobile"),
        )


ANONYMOUS = AuthenticatedUser()
