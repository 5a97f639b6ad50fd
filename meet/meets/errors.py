"""
Error taxonomy for the scheduling engine.

    ValidationError          malformed or missing input; caller fixes and resends
    ConflictError            organizer already busy in the period; business outcome
    AuthorizationError       no usable organizer identity; nothing is persisted
    NotFoundError            meet does not exist
    InfrastructureError      storage or identity service failure; caller may retry
    PersistenceTimeoutError  a storage call ran past its deadline

Each error carries a stable `code` that the transport layer maps to a status.
"""


class MeetError(Exception):
    """Base error for meet operations."""

    code = "unknown"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(MeetError):
    """Raised when a request is missing fields or carries malformed values."""

    code = "invalid_argument"


class ConflictError(MeetError):
    """Raised when the organizer already has a meet overlapping the period."""

    code = "conflict"


class AuthorizationError(MeetError):
    """Raised when no organizer identity can be resolved for the caller."""

    code = "unauthorized"


class NotFoundError(MeetError):
    code = "not_found"


class InfrastructureError(MeetError):
    """Raised when storage or a remote collaborator fails."""

    code = "internal"


class PersistenceTimeoutError(InfrastructureError):
    """Raised when a storage call does not finish before its deadline."""

    code = "timeout"


__all__ = [
    "AuthorizationError",
    "ConflictError",
    "InfrastructureError",
    "MeetError",
    "NotFoundError",
    "PersistenceTimeoutError",
    "ValidationError",
]
