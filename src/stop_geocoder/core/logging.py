"""Loguru logging configuration for the CLI and the API.

Human-readable records go to stderr. Records bound with
``json_output=True`` (per-address re-geocode outcomes) are also serialized
as JSON. With a ``log_dir`` both streams are kept in rotating files too.
"""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"

LOG_FILE_NAME = "stop-geocoder.log"
AUDIT_FILE_NAME = "stop-geocoder-audit.jsonl"


def _is_audit_record(record: dict) -> bool:
    return bool(record["extra"].get("json_output", False))


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """Replace loguru's default sink with the stop-geocoder sinks.

    Args:
        log_level: Minimum level to emit, case-insensitive.
        log_dir: Optional directory for ``stop-geocoder.log`` and the
            serialized ``stop-geocoder-audit.jsonl``; both rotate every
            24 hours and are retained for 7 days.
    """
    level = log_level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=_LOG_FORMAT)
    logger.add(sys.stderr, level=level, serialize=True, filter=_is_audit_record)

    if not log_dir:
        return

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    logger.add(log_path / LOG_FILE_NAME, level=level, format=_LOG_FORMAT, rotation="24h", retention="7 days")
    logger.add(
        log_path / AUDIT_FILE_NAME,
        level=level,
        serialize=True,
        filter=_is_audit_record,
        rotation="24h",
        retention="7 days",
    )
