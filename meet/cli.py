#!/usr/bin/env python3
"""
Meet Command Line Interface

Main entry point for the `meet` command. Operates directly on the configured
SQLite database; the caller's identity is given on the command line.

Usage:
    meet serve                                   # Start the HTTP API
    meet init-db                                 # Create the database schema
    meet create --as-user u-1 --title "Intro" --start 2025-09-03T10:00:00Z --end 2025-09-03T11:00:00Z
    meet update --as-user u-1 --uuid <uuid> --title "Intro" --start ... --end ...
    meet get --id 12
    meet delete --id 12
    meet list --as-user u-1
    meet availability --as-user u-1 --from 2025-09-01 --to 2025-09-07
    meet conflicts --as-user u-1 --start ... --end ...
    meet --version

Output:
    JSON result with success status and data
"""

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from meet import __version__
from meet.auth.models import AuthenticatedUser, parse_roles
from meet.config import MeetConfig, load_config
from meet.logging_config import get_logger, setup_logging
from meet.meets.errors import InfrastructureError, MeetError, PersistenceTimeoutError
from meet.meets.models import MeetRequest
from meet.meets.service import MeetService

logger = get_logger(__name__)


def build_service(config: MeetConfig) -> MeetService:
    from meet.api.main import build_service as _build_service

    return _build_service(config)


def user_from_args(args) -> AuthenticatedUser:
    return AuthenticatedUser(
        id=args.as_user or "",
        uuid=args.as_user or "",
        roles=parse_roles(args.roles),
    )


def request_from_args(args) -> MeetRequest:
    return MeetRequest(
        title=args.title or "",
        start=args.start or "",
        end=args.end or "",
        organizer_id=args.organizer or "",
        participants=list(args.participant or []),
        description=args.description or "",
        color=args.color or "",
        type=args.type,
        price=args.price,
    )


def cmd_serve(args, config: MeetConfig):
    from meet.api.main import run

    if args.host:
        config.app.host = args.host
    if args.port:
        config.app.port = args.port
    run(config, reload=args.reload)


def cmd_init_db(args, config: MeetConfig):
    service = build_service(config)
    return {"success": True, "message": f"Database ready at {service.repository.db_path}"}


def cmd_create(args, config: MeetConfig):
    meet = build_service(config).create(request_from_args(args), user_from_args(args))
    return {"success": True, "data": meet.to_dict(), "message": f"Meet created with UUID {meet.uuid}"}


def cmd_update(args, config: MeetConfig):
    meet = build_service(config).update(args.uuid, request_from_args(args), user_from_args(args))
    return {"success": True, "data": meet.to_dict()}


def cmd_get(args, config: MeetConfig):
    return {"success": True, "data": build_service(config).get_by_id(args.id).to_dict()}


def cmd_delete(args, config: MeetConfig):
    build_service(config).delete(args.id)
    return {"success": True, "message": f"Meet {args.id} deleted"}


def cmd_list(args, config: MeetConfig):
    meets = build_service(config).list_for(args.organizer, user_from_args(args))
    return {"success": True, "data": [m.to_dict() for m in meets], "count": len(meets)}


def cmd_availability(args, config: MeetConfig):
    dates = build_service(config).get_availability(
        args.organizer, user_from_args(args), args.from_date, args.to_date
    )
    return {"success": True, "data": [d.to_dict() for d in dates]}


def cmd_conflicts(args, config: MeetConfig):
    conflicts = build_service(config).conflicts_for(
        args.organizer, user_from_args(args), args.start or "", args.end or "", exclude_uuid=args.uuid
    )
    return {"success": True, "data": [m.to_dict() for m in conflicts], "count": len(conflicts)}


COMMANDS = {
    "serve": cmd_serve,
    "init-db": cmd_init_db,
    "create": cmd_create,
    "update": cmd_update,
    "get": cmd_get,
    "delete": cmd_delete,
    "list": cmd_list,
    "availability": cmd_availability,
    "conflicts": cmd_conflicts,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="meet", description="Meet - organizer calendar booking")
    parser.add_argument("--version", action="version", version=f"meet {__version__}")
    parser.add_argument("--config", help="Path to YAML config (default: args/meet.yaml)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Start the HTTP API")
    serve.add_argument("--host", help="Bind host")
    serve.add_argument("--port", type=int, help="Bind port")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    subparsers.add_parser("init-db", help="Create the database schema")

    # Identity for calendar operations
    identity = argparse.ArgumentParser(add_help=False)
    identity.add_argument("--as-user", help="Caller's user UUID")
    identity.add_argument("--roles", default="", help="Caller's roles, comma-separated")
    identity.add_argument("--organizer", help="Organizer override (elevated roles only)")

    # Meet fields
    fields = argparse.ArgumentParser(add_help=False)
    fields.add_argument("--title", help="Meet title")
    fields.add_argument("--start", help="Start time, RFC 3339")
    fields.add_argument("--end", help="End time, RFC 3339")
    fields.add_argument("--participant", action="append", help="Participant (repeatable)")
    fields.add_argument("--description", help="Description")
    fields.add_argument("--color", help="Display color")
    fields.add_argument("--type", type=int, default=0, help="Meet category")
    fields.add_argument("--price", type=float, default=0.0, help="Price")

    subparsers.add_parser("create", parents=[identity, fields], help="Book a meet")

    update = subparsers.add_parser("update", parents=[identity, fields], help="Update a meet")
    update.add_argument("--uuid", required=True, help="Meet UUID")

    get = subparsers.add_parser("get", help="Show a meet")
    get.add_argument("--id", required=True, help="Meet ID")

    delete = subparsers.add_parser("delete", help="Delete a meet")
    delete.add_argument("--id", required=True, help="Meet ID")

    subparsers.add_parser("list", parents=[identity], help="List an organizer's meets")

    availability = subparsers.add_parser("availability", parents=[identity], help="Occupied slots per date")
    availability.add_argument("--from", dest="from_date", help="First date, YYYY-MM-DD")
    availability.add_argument("--to", dest="to_date", help="Last date, YYYY-MM-DD")

    conflicts = subparsers.add_parser("conflicts", parents=[identity], help="Meets blocking a period")
    conflicts.add_argument("--start", required=True, help="Start time, RFC 3339")
    conflicts.add_argument("--end", required=True, help="End time, RFC 3339")
    conflicts.add_argument("--uuid", help="Meet being moved (excluded)")

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(Path(args.config) if args.config else None)
    setup_logging(config.logging.level, config.logging.format.lower() == "json")

    try:
        result = COMMANDS[args.command](args, config)
    except InfrastructureError as e:
        # Driver details stay in the log
        logger.error("infrastructure_error", command=args.command, error=e.message, exc_info=e)
        message = "service temporarily unavailable" if isinstance(e, PersistenceTimeoutError) else "internal error"
        result = {"success": False, "error": message, "code": e.code}
    except MeetError as e:
        result = {"success": False, "error": e.message, "code": e.code}

    if result is None:
        return 0

    print(json.dumps(result, indent=2))
    return 0 if result.get("success") else 1


if __name__ == "__main__":
    sys.exit(main())
