"""
AuthorFeed Logging Configuration
================================

Structured logging setup for the ingestion pipeline: JSON records for log
files, coloured output for the console, and component loggers carrying the
author and article context of the message.
"""

import logging
import logging.handlers
import sys
import json
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional

# Context keys lifted out of ``extra``: top-level JSON keys, console suffix
CONTEXT_FIELDS = ("component", "username", "guid")

_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", (), None))
) | {"message", "asctime"}


def _record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRIBUTES}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, with the author context at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        extras = _record_extras(record)

        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        for key in CONTEXT_FIELDS:
            if key in extras:
                entry[key] = extras.pop(key)

        if extras:
            entry["extra"] = extras

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Single-line coloured output with the author and article appended."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        line = (
            f"{color}[{timestamp}] {record.levelname:8}{self.RESET} "
            f"{record.name} - {record.getMessage()}"
        )

        context = " ".join(
            f"{key}={getattr(record, key)}"
            for key in ("username", "guid")
            if getattr(record, key, None)
        )
        if context:
            line += f" ({context})"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


def setup_logger(
    name: str = "authorfeed",
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    structured: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Attach console and rotating-file handlers to a logger.

    Calling it again replaces (and closes) the handlers of a previous call.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file, None for console only
        console: Whether to log to stdout
        structured: JSON instead of coloured lines on the console
        max_file_size: Rotate the log file past this many bytes
        backup_count: Number of rotated files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level.upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(
            StructuredFormatter() if structured else ColoredConsoleFormatter()
        )
        logger.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
        )
        # Files are always JSON
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """Logger adapter merging a fixed context into every record."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        if "extra" in kwargs:
            kwargs["extra"] = {**self.extra, **kwargs["extra"]}
        else:
            kwargs["extra"] = dict(self.extra)

        return msg, kwargs


def get_logger_for_component(
    component_name: str,
    username: Optional[str] = None,
    guid: Optional[str] = None,
) -> LoggerAdapter:
    """Get a logger adapter with component-specific context.

    Args:
        component_name: Name of the component (e.g., 'feed_fetcher', 'ingestion')
        username: Author whose feed is being processed (optional)
        guid: Article guid being processed (optional)

    Returns:
        Logger adapter with context
    """
    base_logger = logging.getLogger(f"authorfeed.{component_name}")

    extra_context = {"component": component_name}
    if username:
        extra_context["username"] = username
    if guid:
        extra_context["guid"] = guid

    return LoggerAdapter(base_logger, extra_context)


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/authorfeed.log",
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> None:
    """Configure application-wide logging settings.

    Args:
        log_level: Global log level
        log_file: Path to main log file, None disables file logging
        enable_console: Whether to enable console logging
        structured_logging: Whether to use JSON structured logging
        max_file_size_mb: Rotate the log file past this size
        backup_count: Number of rotated files to keep
    """
    setup_logger(
        name="authorfeed",
        level=log_level,
        log_file=log_file,
        console=enable_console,
        structured=structured_logging,
        max_file_size=max_file_size_mb * 1024 * 1024,
        backup_count=backup_count,
    )

    # Third-party noise
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_ingestion_logger(username: Optional[str] = None) -> LoggerAdapter:
    """Get logger for the ingestion service."""
    return get_logger_for_component("ingestion", username=username)


def get_storage_logger() -> LoggerAdapter:
    """Get logger for storage components."""
    return get_logger_for_component("storage")


class PerformanceLogger:
    """Times a block and logs its outcome.

    Counters recorded on the instance through ``record()`` are attached to the
    completion record, e.g. the number of articles stored by an ingestion run.

    Usage:
        with PerformanceLogger(logger, "feed ingestion") as perf:
            ...
            perf.record(stored=9, skipped=1)
    """

    def __init__(self, logger: logging.Logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.counters: Dict[str, Any] = {}
        self.duration: Optional[float] = None
        self._started: Optional[float] = None

    def record(self, **counters) -> None:
        self.counters.update(counters)

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        self.logger.debug(f"Starting {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.duration = time.perf_counter() - self._started

        extra = {
            **self.context,
            **self.counters,
            "duration_seconds": round(self.duration, 6),
            "success": exc_type is None,
        }

        if exc_type is None:
            self.logger.info(f"Completed {self.operation} in {self.duration:.3f}s", extra=extra)
        else:
            extra["error_type"] = exc_type.__name__
            self.logger.error(f"Failed {self.operation} in {self.duration:.3f}s", extra=extra)
