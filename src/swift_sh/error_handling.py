"""
Error handling system for swift-sh.

Provides the structured error types raised by the build unit pipeline,
plus a central handler that logs failures with sensitive data masked and
dispatches them to registered callbacks.
"""

import errno as errno_codes
import logging
import os
import re
import sys
import traceback
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional


class ScriptError(Exception):
    """Base class for failures surfaced to the command line."""

    @property
    def stderr_string(self) -> str:
        return str(self)


class DirectoryChangeFailed(ScriptError):
    """The build unit directory could not be made the working directory."""

    def __init__(self, path: Path, cause: Optional[OSError] = None):
        self.path = Path(path)
        self.cause = cause
        super().__init__(self.stderr_string)

    @property
    def stderr_string(self) -> str:
        return f"could not chdir: {self.path}"


class SwiftRunFailed(ScriptError):
    """Replacing the process with the build tool failed."""

    def __init__(self, swift: Path, errno: int, tool_name: str = "swift"):
        self.swift = Path(swift)
        self.errno = errno
        self.tool_name = tool_name
        super().__init__(self.stderr_string)

    @property
    def not_found(self) -> bool:
        return self.errno == errno_codes.ENOENT

    @property
    def stderr_string(self) -> str:
        if self.not_found:
            return f"{self.tool_name} not found in PATH"
        return f"{self.tool_name} run failed: {os.strerror(self.errno)}: {self.swift}"


class ErrorLevel(Enum):
    """Error severity levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ErrorCategory(Enum):
    """Error categories for better classification."""

    FILESYSTEM = "FILESYSTEM"
    PROCESS = "PROCESS"
    CONFIGURATION = "CONFIGURATION"
    INPUT = "INPUT"


@dataclass
class ErrorContext:
    """Structured error context information."""

    level: ErrorLevel
    category: ErrorCategory
    message: str
    module: str
    function: str
    details: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None
    traceback_info: Optional[str] = None
    suggestions: List[str] = field(default_factory=list)


_SENSITIVE_PATTERNS = [
    (r'token["\s]*[:=]["\s]*([a-zA-Z0-9_\-+=/.]{8,})', 'token="[REDACTED]"'),
    (r'password["\s]*[:=]["\s]*([^\s"\']+)', 'password="[REDACTED]"'),
    (r"(https?://[^@\s/]+:)[^@\s/]+@", r"\1[REDACTED]@"),  # URLs with credentials
]


def sanitize_message(message: str) -> str:
    """Mask credentials, e.g. in dependency URLs, before they are logged."""
    sanitized = message
    for pattern, replacement in _SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, replacement, sanitized, flags=re.IGNORECASE)
    return sanitized


class SecureLogger:
    """Logger that sanitizes sensitive information."""

    def __init__(self, name: str, level: int = logging.WARNING, mask: bool = True):
        """
        Initialize secure logger.

        Args:
            name: Logger name
            level: Logging level
            mask: Whether to mask credentials in messages
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.mask = mask

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            self.logger.addHandler(handler)

    def _sanitize(self, value: Any) -> Any:
        if not self.mask:
            return value
        if isinstance(value, dict):
            return {key: self._sanitize(item) for key, item in value.items()}
        if isinstance(value, str):
            return sanitize_message(value)
        return value

    def log_error_context(self, context: ErrorContext):
        """
        Log error context with appropriate level.

        Args:
            context: Error context to log
        """
        log_data = {
            "category": context.category.value,
            "module": context.module,
            "function": context.function,
            "details": self._sanitize(context.details),
        }

        if context.exception:
            log_data["exception"] = type(context.exception).__name__

        if context.suggestions:
            log_data["suggestions"] = context.suggestions

        log_message = f"{self._sanitize(context.message)} | {log_data}"
        self.logger.log(getattr(logging, context.level.value), log_message)


# Error callback type
ErrorCallback = Callable[[ErrorContext], None]


class ErrorHandler:
    """
    Centralized error handler for consistent error management.

    Provides logging, callbacks, and per-category statistics.
    """

    def __init__(
        self,
        logger_name: str = "swift_sh",
        log_level: int = logging.WARNING,
        enable_callbacks: bool = True,
        mask_sensitive_data: bool = True,
    ):
        self.logger = SecureLogger(logger_name, log_level, mask_sensitive_data)
        self.enable_callbacks = enable_callbacks
        self.error_callbacks: Dict[ErrorCategory, List[ErrorCallback]] = {}
        self.global_callbacks: List[ErrorCallback] = []
        self.error_stats: Dict[str, int] = {}

    def register_callback(
        self, callback: ErrorCallback, category: Optional[ErrorCategory] = None
    ):
        """
        Register error callback.

        Args:
            callback: Function to call on errors
            category: Error category to filter, None for all errors
        """
        if not self.enable_callbacks:
            return

        if category is None:
            self.global_callbacks.append(callback)
        else:
            self.error_callbacks.setdefault(category, []).append(callback)

    def handle_error(
        self,
        level: ErrorLevel,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        exception: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ) -> ErrorContext:
        """
        Handle an error with structured logging and callbacks.

        Returns:
            ErrorContext: The created error context
        """
        context = ErrorContext(
            level=level,
            category=category,
            message=message,
            module=module,
            function=function,
            details=details or {},
            exception=exception,
            traceback_info=traceback.format_exc() if exception else None,
            suggestions=suggestions or [],
        )

        stat_key = f"{category.value}_{level.value}"
        self.error_stats[stat_key] = self.error_stats.get(stat_key, 0) + 1

        self.logger.log_error_context(context)

        if self.enable_callbacks:
            callbacks = self.error_callbacks.get(category, []) + self.global_callbacks
            for callback in callbacks:
                try:
                    callback(context)
                except Exception as cb_error:
                    # Don't let callback errors break the main flow
                    self.logger.logger.error(f"Error in callback: {cb_error}")

        return context

    def warning(
        self, category: ErrorCategory, message: str, module: str, function: str, **kwargs
    ) -> ErrorContext:
        """Handle warning level error."""
        return self.handle_error(
            ErrorLevel.WARNING, category, message, module, function, **kwargs
        )

    def error(
        self, category: ErrorCategory, message: str, module: str, function: str, **kwargs
    ) -> ErrorContext:
        """Handle error level error."""
        return self.handle_error(
            ErrorLevel.ERROR, category, message, module, function, **kwargs
        )

    def get_error_stats(self) -> Dict[str, int]:
        """Get error statistics."""
        return self.error_stats.copy()

    def reset_stats(self):
        """Reset error statistics."""
        self.error_stats.clear()


# Global error handler instance
_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def setup_error_handling(
    log_level: int = logging.WARNING,
    enable_callbacks: bool = True,
    logger_name: str = "swift_sh",
    mask_sensitive_data: bool = True,
) -> ErrorHandler:
    """
    Setup global error handling configuration.

    Returns:
        ErrorHandler: Configured error handler
    """
    global _global_error_handler
    _global_error_handler = ErrorHandler(
        logger_name, log_level, enable_callbacks, mask_sensitive_data
    )
    return _global_error_handler


def log_filesystem_error(
    message: str,
    module: str,
    function: str,
    path: Optional[Path] = None,
    exception: Optional[Exception] = None,
) -> ErrorContext:
    """Convenience function for logging failures to write a build unit."""
    details = {}
    if path is not None:
        details["path"] = str(path)
    if isinstance(exception, OSError) and exception.errno is not None:
        details["errno"] = exception.errno

    return get_error_handler().error(
        ErrorCategory.FILESYSTEM,
        message,
        module,
        function,
        details=details,
        exception=exception,
        suggestions=[
            "Check permissions of the cache directory",
            "Set XDG_CACHE_HOME to a writable location",
        ],
    )


def log_process_error(
    error: ScriptError, module: str, function: str
) -> ErrorContext:
    """Convenience function for logging a failed process handoff."""
    details: Dict[str, Any] = {}
    suggestions: List[str] = []
    if isinstance(error, DirectoryChangeFailed):
        details["path"] = str(error.path)
        suggestions.append("Check that the build unit directory still exists")
    elif isinstance(error, SwiftRunFailed):
        details["executable"] = str(error.swift)
        details["errno"] = error.errno
        if error.not_found:
            suggestions.append(f"Install {error.tool_name} or add it to PATH")

    return get_error_handler().error(
        ErrorCategory.PROCESS,
        error.stderr_string,
        module,
        function,
        details=details,
        exception=error,
        suggestions=suggestions,
    )
