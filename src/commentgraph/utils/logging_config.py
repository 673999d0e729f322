"""Structured logging for comment collection runs

Every module logs through structlog and every event is rendered as one JSON
object per line, both to a log file and to stdout. Collection progress
(pages, threads, replies, quota units) is advisory and never drives control
flow.

Usage:
    >>> from commentgraph.utils.logging_config import setup_logging, get_logger
    >>> setup_logging(verbose=True)
    >>> log = get_logger("commentgraph.collector")
    >>> log.info("video_collected", video_id="dQw4w9WgXcQ", threads=100, replies=12)
"""

import logging
import sys
from pathlib import Path

import structlog


_PRE_CHAIN = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.format_exc_info,
    structlog.processors.StackInfoRenderer(),
]


def _json_handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=_PRE_CHAIN,
    ))
    return handler


def setup_logging(
    log_dir: str = "logs",
    log_filename: str = "commentgraph.log",
    verbose: bool = False,
) -> None:
    """Route structlog events to a JSON log file and to stdout.

    The file receives every event from DEBUG up, including per-page and
    per-parent progress. The console shows run and video summaries only,
    unless verbose is set. Calling this again replaces the previous handlers.

    Args:
        log_dir: Directory for the log file, created if missing (default: "logs")
        log_filename: Log file name (default: "commentgraph.log")
        verbose: Also print DEBUG progress events to the console

    Example line:
        {"video_id": "dQw4w9WgXcQ", "page": 3, "page_items": 100,
         "event": "threads_page_fetched", "level": "debug",
         "logger": "commentgraph.collector", "timestamp": "2026-02-10T12:34:56.789Z"}
    """
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)

    structlog.configure(
        processors=_PRE_CHAIN + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()
    root.addHandler(_json_handler(
        logging.FileHandler(str(directory / log_filename), encoding="utf-8"), logging.DEBUG
    ))
    root.addHandler(_json_handler(
        logging.StreamHandler(sys.stdout), logging.DEBUG if verbose else logging.INFO
    ))


def get_logger(name: str = None):
    """Return a structlog logger bound to name (the root logger if None)."""
    return structlog.get_logger(name)
