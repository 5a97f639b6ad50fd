"""
Log output for the meet service.

Every record goes through structlog, including records from stdlib loggers
(uvicorn, httpx, the repository), and is written to stderr by one handler
that this module owns. Calling configure again swaps that handler and leaves
any other root handler in place.

Records carry the fields bound for the current request (request id, method,
path, organizer, meet uuid). The HTTP middleware binds and clears them.

Environment:
    LOG_LEVEL   DEBUG, INFO, WARNING, ERROR (default INFO)
    LOG_FORMAT  "json" for one JSON object per line, anything else for console

Usage:
    from meet.logging_config import setup_logging, get_logger
    setup_logging()
    logger = get_logger(__name__)
    logger.info("meet_created", uuid=meet.uuid)
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

SERVICE_NAME = "meet"
HANDLER_NAME = "meet-structlog"

# Third-party loggers that are only interesting while debugging
CHATTY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def _level_from(name: str | int | None) -> int:
    if isinstance(name, int):
        return name
    name = name or os.environ.get("LOG_LEVEL") or "INFO"
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _add_service(_, __, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _pre_chain() -> list:
    """Processors shared by structlog loggers and foreign stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_service,
    ]


def _build_handler(json_output: bool) -> logging.Handler:
    if json_output:
        tail = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        tail = [structlog.dev.ConsoleRenderer()]

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_pre_chain(),
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *tail],
        )
    )
    return handler


def setup_logging(level: str | int | None = None, json_output: bool | None = None) -> None:
    """
    Route all logging through structlog.

    Args:
        level: Level name or number (default: LOG_LEVEL, then INFO)
        json_output: JSON lines instead of console output (default: LOG_FORMAT == "json")
    """
    numeric_level = _level_from(level)
    if json_output is None:
        json_output = os.environ.get("LOG_FORMAT", "").strip().lower() == "json"

    structlog.configure(
        processors=[
            *_pre_chain(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(_build_handler(json_output))
    root.setLevel(numeric_level)

    chatty_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request_context(**fields) -> None:
    """Attach fields to every record logged in the current context. None values are skipped."""
    structlog.contextvars.bind_contextvars(**{k: v for k, v in fields.items() if v is not None})


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


__all__ = ["bind_request_context", "clear_request_context", "get_logger", "setup_logging"]
