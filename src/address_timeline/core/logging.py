"""Loguru logging configuration.

Ordinary records go to stderr in a human-readable format.  Timeline
integrity failures are bound with ``json_output=True`` and written as JSON
records instead, so the offending row IDs survive as structured fields.
Optionally writes everything to a rotating log file when a ``log_dir`` is
provided.
"""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"


def _is_structured(record: dict) -> bool:
    return bool(record["extra"].get("json_output", False))


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """Configure Loguru sinks.

    Args:
        log_level: Minimum log level to emit.
        log_dir: Optional directory for log files.  When set, a rotating
            file sink is added (rotated every 24 hours, retained 7 days).
    """
    level = log_level.upper()
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=_LOG_FORMAT,
        filter=lambda record: not _is_structured(record),
    )
    logger.add(sys.stderr, level=level, serialize=True, filter=_is_structured)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / "address-timeline.log",
            level=level,
            format=_LOG_FORMAT + " | {extra}",
            rotation="24h",
            retention="7 days",
        )


def log_integrity_failure(message: str, **context: object) -> None:
    """Log a broken timeline invariant as a structured error record.

    The context is bound as extra fields for the JSON sink and also rendered
    into the message text, so plain-text sinks name the rows involved too.

    Args:
        message: What went wrong.
        **context: Identifiers of the user and rows involved.
    """
    details = ", ".join(f"{key}={value}" for key, value in context.items())
    text = f"Timeline integrity failure: {message}"
    if details:
        text = f"{text} ({details})"
    logger.bind(json_output=True, **context).error(text)
