"""
Structured logging configuration for swift-sh.

Emits one JSON object per event on stderr, keeping stdout free for the
script being run.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from .error_handling import sanitize_message

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, mask_sensitive_data: bool = True):
        super().__init__()
        self.mask_sensitive_data = mask_sensitive_data

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": getattr(record, "component", record.name),
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        output = json.dumps(log_entry, default=str)
        return sanitize_message(output) if self.mask_sensitive_data else output


class EventLogger:
    """Structured logger for build unit lifecycle events."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(f"swift_sh.{name}")
        self.component = name
        self._setup_logger()

    def _setup_logger(self) -> None:
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.propagate = False

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, "component": self.component, **kwargs}
        self.logger.log(level, event_type, extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        self._log(logging.INFO, event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        self._log(logging.WARNING, event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        self._log(logging.DEBUG, event_type, **kwargs)


# Global logger instances
_cache_logger = EventLogger("cache")
_build_logger = EventLogger("build")


def get_cache_logger() -> EventLogger:
    """Get build unit cache logger."""
    return _cache_logger


def get_build_logger() -> EventLogger:
    """Get build tool logger."""
    return _build_logger


def configure_logging(
    log_level: str = "WARNING",
    enable_json: bool = True,
    mask_sensitive_data: bool = True,
) -> None:
    """Configure level and output format of the event loggers."""
    level = getattr(logging, log_level.upper(), logging.WARNING)

    for event_logger in [_cache_logger, _build_logger]:
        event_logger.logger.setLevel(level)
        for handler in event_logger.logger.handlers:
            if enable_json:
                handler.setFormatter(StructuredFormatter(mask_sensitive_data))
            else:
                handler.setFormatter(
                    logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
                )


configure_logging()
