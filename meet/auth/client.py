"""
Tool: Identity Client
Purpose: Resolve bearer tokens into authenticated users

The identity service owns credentials. This client forwards the caller's
token to `GET <service_url>/me` and turns the JSON reply into an
AuthenticatedUser. Gateway deployments may instead forward an already
validated identity as x-user-* headers (see user_from_headers).

Usage:
    client = IdentityClient("http://auth.internal:8082", timeout=5.0)
    user = client.fetch_user(token)

Dependencies:
    - httpx (HTTP client)
"""

import logging
from collections.abc import Mapping

import httpx

from meet.meets.errors import AuthorizationError, InfrastructureError

from .models import AuthenticatedUser, parse_roles

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "
TOKEN_COOKIE = "access_token"

# Headers set by a trusted gateway after it validated the token
HEADER_USER_ID = "x-user-id"
HEADER_USER_UUID = "x-user-uuid"
HEADER_USER_EMAIL = "x-user-email"
HEADER_USER_ROLES = "x-user-roles"


def extract_token(authorization: str | None, cookie: str | None = None) -> str:
    """Token from an 'Authorization: Bearer ...' header, else the access_token cookie."""
    if authorization and len(authorization) > len(BEARER_PREFIX) and authorization.startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX):].strip()
    return cookie or ""


def user_from_headers(headers: Mapping[str, str]) -> AuthenticatedUser | None:
    """
    Build a user from gateway-forwarded headers.

    Returns None unless at least the id or uuid header is present.
    """
    normalized = {k.lower(): v for k, v in headers.items()}
    user_id = normalized.get(HEADER_USER_ID, "").strip()
    user_uuid = normalized.get(HEADER_USER_UUID, "").strip()
    if not user_id and not user_uuid:
        return None

    return AuthenticatedUser(
        id=user_id,
        uuid=user_uuid,
        email=normalized.get(HEADER_USER_EMAIL, "").strip(),
        roles=parse_roles(normalized.get(HEADER_USER_ROLES, "")),
    )


class IdentityClient:
    """Client for the remote identity service."""

    def __init__(self, base_url: str, timeout: float = 5.0, transport: httpx.BaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def fetch_user(self, token: str) -> AuthenticatedUser:
        """
        Validate a token with the identity service.

        Raises:
            AuthorizationError: token missing or rejected
            InfrastructureError: identity service unreachable or replied garbage
        """
        if not token:
            raise AuthorizationError("missing access token")

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(
                    f"{self.base_url}/me",
                    headers={"Authorization": f"{BEARER_PREFIX}{token}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Identity service request failed: {e}")
            raise InfrastructureError("identity service unavailable") from e

        if response.status_code != httpx.codes.OK:
            logger.info(f"Identity service rejected token, status: {response.status_code}")
            raise AuthorizationError("invalid access token")

        try:
            data = response.json()
        except ValueError as e:
            raise InfrastructureError("identity service returned invalid JSON") from e

        user = AuthenticatedUser.from_dict(data)
        if user.is_anonymous:
            raise AuthorizationError("invalid access token")
        return user
