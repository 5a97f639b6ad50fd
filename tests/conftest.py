"""Shared test fixtures for the meet service tests.

This module provides common fixtures used across all test modules:
- Database isolation with temporary files
- Repository and service wired to the temporary database
- Standard callers (plain organizer, elevated programmer)
- Sample meet requests

Usage:
    def test_something(service, organizer, sample_request):
        meet = service.create(sample_request, organizer)
"""

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from meet.auth.models import AuthenticatedUser, Role
from meet.meets.models import MeetRequest
from meet.meets.repository import SQLiteMeetRepository
from meet.meets.service import MeetService
from tests.helpers import make_request


# ─────────────────────────────────────────────────────────────────────────────
# Path Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent


# ─────────────────────────────────────────────────────────────────────────────
# Database Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_db() -> Generator[Path, None, None]:
    """Create a temporary database file for testing.

    The database file (and its WAL side files) are deleted after the test.

    Yields:
        Path to the temporary database file
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    # Cleanup
    for path in (db_path, Path(f"{db_path}-wal"), Path(f"{db_path}-shm")):
        if path.exists():
            os.unlink(path)


@pytest.fixture
def repository(temp_db: Path) -> SQLiteMeetRepository:
    """Repository on the temporary database with a short default timeout."""
    return SQLiteMeetRepository(temp_db, timeout=2.0)


@pytest.fixture
def service(repository: SQLiteMeetRepository) -> MeetService:
    return MeetService(repository, timeout=2.0)


# ─────────────────────────────────────────────────────────────────────────────
# User Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def organizer() -> AuthenticatedUser:
    """A plain organizer acting on their own calendar."""
    return AuthenticatedUser(id="1", uuid="org-1", email="org1@example.com", roles=frozenset({Role.ORGANIZER}))


@pytest.fixture
def other_organizer() -> AuthenticatedUser:
    return AuthenticatedUser(id="2", uuid="org-2", email="org2@example.com", roles=frozenset({Role.ORGANIZER}))


@pytest.fixture
def programmer() -> AuthenticatedUser:
    """An elevated caller who may act on any organizer's calendar."""
    return AuthenticatedUser(id="9", uuid="prog-9", email="dev@example.com", roles=frozenset({Role.PROGRAMMER}))


# ─────────────────────────────────────────────────────────────────────────────
# Meet Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def sample_request() -> MeetRequest:
    """Sample create request for a one-hour meet.

    Returns:
        MeetRequest with optional fields populated
    """
    return make_request(
        participants=["alice@example.com", "bob@example.com"],
        description="First conversation",
        color="#3366ff",
        type=2,
        old_price=120.0,
        discount=20.0,
        price=100.0,
    )
