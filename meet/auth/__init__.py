"""Auth - Identity of the caller

Components:
    models.py: Role, AuthenticatedUser
    client.py: Remote identity service client, gateway header parsing
"""

from .client import IdentityClient, extract_token, user_from_headers
from .models import ANONYMOUS, AuthenticatedUser, Role, parse_roles

__all__ = [
    "ANONYMOUS",
    "AuthenticatedUser",
    "IdentityClient",
    "Role",
    "extract_token",
    "parse_roles",
    "user_from_headers",
]
