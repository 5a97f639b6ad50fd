"""
Meet - Organizer calendar booking service

Books time-bounded meetings for an organizer, refuses double-bookings, and
reports which parts of an upcoming window are already occupied.

Components:
- meets/: Scheduling engine (time windows, organizer resolution, conflicts,
  availability, create/update orchestration)
- auth/: Identity collaborator (remote identity service, gateway headers)
- api/: HTTP/JSON transport (FastAPI)
- cli.py: Command line entry point

Usage:
    from meet.meets.repository import SQLiteMeetRepository
    from meet.meets.service import MeetService

    service = MeetService(SQLiteMeetRepository(db_path))
    meet = service.create(request, user)
"""

from pathlib import Path

# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
ARGS_DIR = PROJECT_ROOT / "args"
CONFIG_PATH = ARGS_DIR / "meet.yaml"

__version__ = "0.1.0"

__all__ = [
    "PROJECT_ROOT",
    "ARGS_DIR",
    "CONFIG_PATH",
    "__version__",
]
