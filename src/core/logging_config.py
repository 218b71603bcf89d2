"""
ReviewDesk Logging
==================

One place to configure logging for the API server and the triage CLI.

Two output styles:
- human-readable lines for local development
- JSON lines for log aggregation (LOG_JSON=true)

Review context passed through `extra=` ends up as top-level JSON keys:

    logger.info("Auto-flagged review", extra={"review_id": rid, "flag_reason": "low_rating"})

Usage:
    from src.core.logging_config import setup_logging

    setup_logging(level="DEBUG")
    setup_logging(json_output=True, log_file="logs/reviewdesk.log")
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import List, Optional

CONTEXT_FIELDS = ("review_id", "business_id", "collection", "priority_score", "flag_reason")

NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
TEXT_DATEFMT = "%Y-%m-%dT%H:%M:%S"


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

        {"ts": "...", "level": "WARNING", "logger": "src.reviews.review_service",
         "msg": "...", "review_id": "...", "flag_reason": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update({
            name: getattr(record, name)
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        })
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _build_handlers(log_file: Optional[str], max_bytes: int, backup_count: int) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count,
        ))
    return handlers


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
):
    """
    Replace the root logger's handlers with ReviewDesk's.

    Args:
        level: DEBUG, INFO, WARNING or ERROR (unknown names fall back to INFO)
        json_output: JSON lines instead of plain text
        log_file: Also write to this file, rotated at max_bytes
    """
    formatter = JSONFormatter() if json_output else logging.Formatter(TEXT_FORMAT, TEXT_DATEFMT)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in _build_handlers(log_file, max_bytes, backup_count):
        handler.setFormatter(formatter)
        root.addHandler(handler)
    level_no = logging.getLevelName(level.upper())
    root.setLevel(level_no if isinstance(level_no, int) else logging.INFO)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging ready (level={level}, json={json_output}, file={log_file or '-'})"
    )
