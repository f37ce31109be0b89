"""Logging configuration with per-crawl context."""

import logging
import sys
import json
import uuid
from typing import Optional, Dict, Any
from datetime import datetime, timezone

# Third-party loggers that are chatty below WARNING
_QUIET_LOGGERS = ("psycopg2", "sqlglot")


def _crawl_context(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, "extra_fields", None) or {}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, crawl context fields inlined."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data.update(_crawl_context(record))

        return json.dumps(log_data, default=str)


class StandardFormatter(logging.Formatter):
    """Human-readable formatter that tags records with their crawl id."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        crawl_id = _crawl_context(record).get("crawl_id")
        if crawl_id:
            return f"[{crawl_id}] {text}"
        return text


def setup_logging(
    level: str = "INFO",
    structured: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Set up logging configuration.

    Records go to stderr, so command output written to stdout stays clean.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        structured: Use structured JSON logging if True
        log_file: Optional log file path
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if structured:
        formatter = StructuredFormatter()
    else:
        formatter = StandardFormatter()

    handlers = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True,
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


class CrawlLoggerAdapter(logging.LoggerAdapter):
    """Attaches the crawl context to every record as ``extra_fields``."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        if "extra" not in kwargs:
            kwargs["extra"] = {}

        kwargs["extra"]["extra_fields"] = self.extra

        return msg, kwargs


def new_crawl_logger(name: str = "schemacrawl", **context: Any) -> CrawlLoggerAdapter:
    """Create the logging handle for one crawl invocation.

    Each call gets a fresh ``crawl_id`` so records of concurrent or
    successive crawls can be told apart.

    Example:
        >>> log = new_crawl_logger(datasource="warehouse", command="summary")
        >>> log.info("Retrieved tables")  # record carries crawl_id and datasource
    """
    fields: Dict[str, Any] = {"crawl_id": uuid.uuid4().hex[:12]}
    fields.update(context)
    return CrawlLoggerAdapter(logging.getLogger(name), fields)
