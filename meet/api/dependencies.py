"""
FastAPI dependencies: the service and the caller's identity.
"""

from fastapi import Request

from meet.auth.client import TOKEN_COOKIE, IdentityClient, extract_token, user_from_headers
from meet.auth.models import ANONYMOUS, AuthenticatedUser
from meet.config import MeetConfig
from meet.meets.errors import AuthorizationError
from meet.meets.service import MeetService


def get_service(request: Request) -> MeetService:
    return request.app.state.service


def get_identity_client(request: Request) -> IdentityClient:
    return request.app.state.identity_client


def get_current_user(request: Request) -> AuthenticatedUser:
    """
    Identify the caller.

    Order: gateway headers (when trusted), then the bearer token / access_token
    cookie validated by the identity service. With require_auth disabled an
    unidentified caller is anonymous, which still cannot act on any calendar.
    """
    config: MeetConfig = request.app.state.config

    if config.auth.trust_gateway_headers:
        user = user_from_headers(request.headers)
        if user is not None:
            return user

    token = extract_token(request.headers.get("Authorization"), request.cookies.get(TOKEN_COOKIE))
    if not token:
        if not config.auth.require_auth:
            return ANONYMOUS
        raise AuthorizationError("missing access token")

    return get_identity_client(request).fetch_user(token)
