"""Logging configuration with trace_id support and file rotation.

- Daily rotating log files (info and error kept separately)
- trace_id injected into every record for request correlation
- Console and file output
"""
from __future__ import annotations

import logging
import logging.handlers
import re
from pathlib import Path

from app.core.config import get_settings
from app.core.trace_context import get_trace_id

LOG_FORMAT = (
    "%(asctime)s %(levelname)s [trace_id=%(trace_id)s] "
    "%(name)s:%(lineno)d - %(message)s"
)


class TraceIdFilter(logging.Filter):
    """Attach the current trace_id to each LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        trace_id = get_trace_id()
        record.trace_id = trace_id if trace_id else "N/A"
        return True


class ErrorOnlyFilter(logging.Filter):
    """Only let ERROR and above through."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def _dated_namer(name: str) -> str:
    """Rename ``app-info.log.2024-12-23`` to ``app-info-2024-12-23.log``."""
    match = re.match(r"(.+)\.log\.(\d{4}-\d{2}-\d{2})$", name)
    if match:
        base, date = match.groups()
        return f"{base}-{date}.log"
    return name


def _rotating_handler(path: Path, level: int, backup_count: int) -> logging.Handler:
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(path),
        when="midnight",
        interval=1,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.namer = _dated_namer
    return handler


def init_logging() -> None:
    """
    Initialize the logging system.

    Handlers:
    - logs/app-info.log: INFO and above
    - logs/app-error.log: ERROR and above
    - console: configured ``log_level`` and above
    """
    settings = get_settings()
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    console_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # handlers decide what gets written
    root_logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    trace_filter = TraceIdFilter()

    info_handler = _rotating_handler(
        log_dir / "app-info.log", logging.INFO, settings.log_backup_count
    )
    error_handler = _rotating_handler(
        log_dir / "app-error.log", logging.ERROR, settings.log_backup_count
    )
    error_handler.addFilter(ErrorOnlyFilter())

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)

    for handler in (info_handler, error_handler, console_handler):
        handler.setFormatter(formatter)
        handler.addFilter(trace_filter)
        root_logger.addHandler(handler)

    # httpx logs every request at INFO; our clients log their own summaries
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging initialized: log_dir=%s, backup_count=%s, console_level=%s",
        log_dir,
        settings.log_backup_count,
        logging.getLevelName(console_level),
    )
