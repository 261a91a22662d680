"""Logging helpers for treesync runs."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys
from typing import Union

LOG_FILENAME = "treesync.log"
STRUCTURED_LOG_FILENAME = "treesync.jsonl"
MAX_BYTES = 5 * 1024 * 1024  # 5 MB per log segment
BACKUP_COUNT = 3
REPO_ROOT = Path(__file__).resolve().parent.parent
FALLBACK_ROOT = REPO_ROOT / ".treesync_runtime"

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(
    log_dir: Path,
    level: Union[str, int] = logging.WARNING,
    structured: bool = False,
) -> Path:
    """Route the ``treesync`` logger to a rotating log file and stderr.

    Calling it again replaces the handlers from the previous call. With
    ``structured`` set, records are also written as JSON lines next to the
    text log. Returns the path of the text log.
    """
    text_formatter = logging.Formatter(TEXT_FORMAT)
    log_path = _resolve_log_path(log_dir, LOG_FILENAME)

    logger = logging.getLogger("treesync")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(_resolve_level(level))
    logger.propagate = False

    logger.addHandler(_rotating_handler(log_path, text_formatter))
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(text_formatter)
    logger.addHandler(console_handler)

    if structured:
        json_path = _resolve_log_path(log_dir, STRUCTURED_LOG_FILENAME)
        logger.addHandler(_rotating_handler(json_path, JSONFormatter()))

    return log_path


def _rotating_handler(path: Path, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def _resolve_level(level: Union[str, int]) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.WARNING)
    return int(level)


def _resolve_log_path(log_dir: Path, filename: str) -> Path:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir / filename
    except PermissionError:
        FALLBACK_ROOT.mkdir(parents=True, exist_ok=True)
        print(
            f"[logging] Unable to write logs under '{log_dir}'; "
            f"falling back to '{FALLBACK_ROOT}'.",
            file=sys.stderr,
        )
        return FALLBACK_ROOT / filename


__all__ = [
    "setup_logging",
    "JSONFormatter",
    "LOG_FILENAME",
    "STRUCTURED_LOG_FILENAME",
    "FALLBACK_ROOT",
]
