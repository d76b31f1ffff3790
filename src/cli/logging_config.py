"""structlog setup for the swarm-learn CLI and for agents embedding the engine."""

import logging
import re
import sys
from typing import TextIO

import structlog

# Secrets that tend to leak into failure details and error messages
_SECRET_PATTERNS = [
    (re.compile(r"(sk-[a-zA-Z0-9_-]{6})[a-zA-Z0-9_-]{20,}"), r"\1...REDACTED"),
    (re.compile(r"(gh[pousr]_[a-zA-Z0-9]{4})[a-zA-Z0-9]{20,}"), r"\1...REDACTED"),
    (re.compile(r"(Bearer\s+)[a-zA-Z0-9_.-]{20,}"), r"\1REDACTED"),
    (
        re.compile(r"((?:api[_-]?key|token|password|secret)['\"]?\s*[:=]\s*['\"]?)[^\s'\",]{6,}", re.I),
        r"\1REDACTED",
    ),
    (re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"), "REDACTED@email"),
]


def _redact_sensitive(_, __, event_dict: dict) -> dict:
    """Structlog processor that scrubs secrets from string values."""
    for key, value in event_dict.items():
        if isinstance(value, str):
            for pattern, replacement in _SECRET_PATTERNS:
                value = pattern.sub(replacement, value)
            event_dict[key] = value
    return event_dict


def _shared_processors(json_mode: bool) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _redact_sensitive,
    ]
    if json_mode:
        processors.append(structlog.processors.dict_tracebacks)
    return processors


def setup_logging(json_mode: bool = False, level: str = "INFO", stream: TextIO | None = None) -> None:
    """Route structlog events through stdlib logging to one stream.

    Args:
        json_mode: One JSON object per line, for orchestrators that parse
                   engine events. False = human-readable console output.
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        stream: Destination (default: stderr, so command output on stdout
                stays clean).
    """
    stream = stream or sys.stderr
    shared = _shared_processors(json_mode)

    if json_mode:
        renderer = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream.isatty())

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # foreign_pre_chain gives plain stdlib records the same timestamp/level keys
    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
