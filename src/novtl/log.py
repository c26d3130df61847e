"""Structured logging for novtl.

Log lines always go to stderr; stdout is reserved for streamed translation
and chat text. API keys that reach a log event are masked before rendering.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import structlog

from novtl.config import mask_key

SECRET_FIELDS = frozenset({"api_key", "authorization"})
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "google_genai")


def redact_secrets(logger, method_name: str, event_dict: dict) -> dict:
    """structlog processor that masks credential fields."""
    for name in SECRET_FIELDS & event_dict.keys():
        value = event_dict[name]
        if isinstance(value, str) and value:
            event_dict[name] = mask_key(value)
    return event_dict


def resolve_level(verbosity: int = 0, level: str = "INFO") -> int:
    """Pick the root level: ``-v``/``-q`` win, otherwise the configured name."""
    if verbosity > 0:
        return logging.DEBUG
    if verbosity < 0:
        return logging.WARNING
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _formatter(renderer) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def configure_logging(
    verbosity: int = 0,
    log_file: Optional[Path] = None,
    level: str = "INFO",
) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        verbosity: -1 forces WARNING, 1 forces DEBUG, 0 uses ``level``
        log_file: Optional path for JSON log lines (always at DEBUG)
        level: Configured level name, normally ``NOVTL_LOG_LEVEL``
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(_formatter(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console_handler)
    root.setLevel(resolve_level(verbosity, level))

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)
        # The file captures DEBUG even when the console is quieter
        root.setLevel(logging.DEBUG)
        console_handler.setLevel(resolve_level(verbosity, level))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
