"""structlog configuration for the portal server and the content CLI.

One processor chain feeds two renderers: console output while developing,
JSON lines when ``APP_ENV=production`` (or ``json_output=True``).  Records
from the standard ``logging`` module are routed through the same chain.

The portal relays bearer tokens, passwords and the admin PIN, so a
redaction step masks those keys before any renderer sees the event.
"""

import logging
import os
import sys
from collections.abc import MutableMapping
from typing import Any, TextIO

import structlog

REDACTED = "[redacted]"

# Event keys whose values never reach the log output.
SECRET_KEYS = frozenset(
    {"authorization", "token", "access", "refresh", "password", "pin", "admin_pin_code"}
)

# Libraries that log every request at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "aiosqlite")


def redact_secrets(
    _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor masking values stored under :data:`SECRET_KEYS`."""
    for key in event_dict.keys() & SECRET_KEYS:
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
    ]


def _renderer(use_json: bool, out: TextIO) -> structlog.types.Processor:
    if use_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=out.isatty())


def _route_stdlib_logging(
    level: str,
    out: TextIO,
    processors: list[structlog.types.Processor],
) -> None:
    """Send stdlib records (uvicorn, httpx, aiosqlite) through *processors*."""
    handler = logging.StreamHandler(out)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *processors],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Request URLs carry query strings; keep them out unless debugging.
    library_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> structlog.BoundLogger:
    """Configure structlog and stdlib logging.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR.
        json_output: Force JSON lines.  Otherwise JSON is used only when
                     ``APP_ENV`` is ``production``.
        stream: Destination for all log output, stdout by default.  The CLI
                passes stderr so its feed rows stay alone on stdout.

    Returns:
        The root structlog logger.
    """
    out = stream or sys.stdout
    level = log_level.upper()
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"

    shared = _shared_processors()
    renderer = _renderer(use_json, out)

    structlog.configure(
        processors=[*shared, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=out),
        cache_logger_on_first_use=True,
    )
    _route_stdlib_logging(level, out, [*shared, renderer])

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger bound to *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
