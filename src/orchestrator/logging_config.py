"""
Review Insight Structured Logging Configuration
===============================================

Log setup shared by the CLI and embedding services:
- JSON lines carrying job context (job_id, stage, duration...) for
  aggregation of background analysis jobs
- Plain text for interactive CLI use
- Optional rotating log file
- Per-module level overrides (e.g. silence record validation chatter)

Handlers write to stderr so that CLI results printed on stdout stay
machine-readable.

Usage:
    from src.orchestrator.logging_config import setup_logging

    setup_logging(json_output=True, log_file="logs/pipeline.log")
    logger.info("Stage done", extra={"job_id": job.job_id, "stage": "analyzing"})
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Dict, Optional

# Record attributes passed through `extra=` that end up in JSON lines.
EXTRA_FIELDS = ("job_id", "stage", "status", "duration", "review_count", "cache_key")

TEXT_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)-32s | %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Output format:
        {"ts": "2026-...", "level": "INFO", "logger": "src.orchestrator...",
         "msg": "...", "job_id": "...", "stage": "analyzing"}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update({
            key: getattr(record, key)
            for key in EXTRA_FIELDS
            if getattr(record, key, None) is not None
        })
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def build_formatter(json_output: bool) -> logging.Formatter:
    if json_output:
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
    module_levels: Optional[Dict[str, str]] = None,
):
    """
    Configure root logging for the review pipeline.

    Args:
        level: Root log level (DEBUG, INFO, WARNING, ERROR)
        json_output: Emit JSON lines instead of text
        log_file: Also log to this file, rotated at ``max_bytes``
        backup_count: Rotated files to keep
        module_levels: Logger name -> level overrides
    """
    formatter = build_formatter(json_output)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        ))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name, module_level in (module_levels or {}).items():
        logging.getLogger(name).setLevel(getattr(logging, module_level.upper(), logging.INFO))

    root.debug(
        "Logging configured: level=%s json=%s file=%s",
        level, json_output, log_file or "none",
    )


def setup_logging_from_settings(verbose: bool = False) -> None:
    """
    Configure logging from LOG_LEVEL / LOG_JSON / LOG_FILE.

    Production environments always log JSON lines.
    """
    from ..data.config import get_settings

    settings = get_settings()
    config = settings.logging
    setup_logging(
        level="DEBUG" if verbose else config.level,
        json_output=config.json_logs or settings.is_production(),
        log_file=config.log_file,
        # per-record validation fallbacks are only interesting when verbose
        module_levels=None if verbose else {"src.data.review_records": "INFO"},
    )
