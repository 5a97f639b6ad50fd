"""
Integration test fixtures for the meet HTTP API.

Provides fixtures specific to integration testing:
- FastAPI test clients over an isolated database
- Gateway identity headers for standard callers
- An identity service stub on httpx.MockTransport
"""

from collections.abc import Generator
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from meet.api.main import create_app
from meet.auth.client import IdentityClient
from meet.config import AuthConfig, MeetConfig, StorageConfig
from meet.meets.repository import SQLiteMeetRepository


# ─────────────────────────────────────────────────────────────────────────────
# Identity
# ─────────────────────────────────────────────────────────────────────────────

# Tokens known to the stub identity service
KNOWN_TOKENS = {
    "organizer-token": {"id": 1, "uuid": "org-1", "email": "org1@example.com", "roles": ["Organizer"]},
}


def identity_handler(request: httpx.Request) -> httpx.Response:
    token = request.headers.get("Authorization", "").removeprefix("Bearer ")
    user = KNOWN_TOKENS.get(token)
    if user is None:
        return httpx.Response(401, json={"error": "invalid token"})
    return httpx.Response(200, json=user)


# ─────────────────────────────────────────────────────────────────────────────
# App Fixtures
# ─────────────────────────────────────────────────────────────────────────────


def build_config(db_path: Path, **auth) -> MeetConfig:
    return MeetConfig(
        auth=AuthConfig(**auth),
        storage=StorageConfig(db_path=str(db_path), timeout_seconds=2.0),
    )


@pytest.fixture
def api_repository(temp_db: Path) -> SQLiteMeetRepository:
    return SQLiteMeetRepository(temp_db, timeout=2.0)


@pytest.fixture
def test_client(temp_db: Path, api_repository) -> Generator[TestClient, None, None]:
    """Client for an app that trusts gateway identity headers."""
    app = create_app(
        build_config(temp_db, trust_gateway_headers=True),
        repository=api_repository,
        identity_client=IdentityClient("http://auth.test", transport=httpx.MockTransport(identity_handler)),
    )
    with TestClient(app) as client:
        yield client


@pytest.fixture
def token_client(temp_db: Path, api_repository) -> Generator[TestClient, None, None]:
    """Client for an app that validates bearer tokens with the identity service."""
    app = create_app(
        build_config(temp_db, trust_gateway_headers=False, require_auth=True),
        repository=api_repository,
        identity_client=IdentityClient("http://auth.test", transport=httpx.MockTransport(identity_handler)),
    )
    with TestClient(app) as client:
        yield client
