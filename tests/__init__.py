"""Meet Service Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - meets/: Scheduling engine (timewindow, organizer, conflicts,
    availability, repository, service)
  - auth/: Identity models and client
  - test_config.py, test_logging_config.py, test_cli.py
- integration/: HTTP API tests through TestClient and httpx.AsyncClient

Running tests:
    # All tests
    pytest

    # Specific module
    pytest tests/unit/meets/

    # Only the HTTP API
    pytest -m integration
"""
