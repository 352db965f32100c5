"""
Error Handling Utilities for EventKit Bridge

Every failure the bridge reports passes through handle_error, which:
1. Derives a severity from the error category
2. Logs one structured record with the helper's exit code and cause chain
3. Suppresses identical repeats inside a short window, so a helper that
   fails on every call does not flood the log

Spawn failures are reported with a normalized errno description so the
same missing or non-executable helper reads the same on every platform.

USAGE:
    from eventkit_bridge.utils.error_handling import handle_error, ErrorCategory

    try:
        path = resolver.resolve()
    except BinaryResolutionError as e:
        handle_error(e, "resolve_helper_binary", ErrorCategory.BINARY)
        raise
"""

import errno
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..exceptions import ExecutionError, ProcessTimedOutError

logger = logging.getLogger(__name__)

REPEAT_WINDOW_SECONDS = 60.0


class ErrorCategory(Enum):
    """Where in the helper pipeline an error happened."""
    SECURITY = "security"       # Allowlist violations, digest mismatches
    BINARY = "binary"           # Locating the helper
    EXECUTION = "execution"     # Spawning, timeouts, exit codes
    DECODE = "decode"           # Malformed helper output
    PERMISSION = "permission"   # OS denial and consent prompts
    CONFIG = "configuration"    # Settings files and environment
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


_LOG_LEVELS = {
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


@dataclass
class ErrorContext:
    """One reported failure."""
    error: Exception
    category: ErrorCategory
    severity: ErrorSeverity
    operation: str
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    @property
    def key(self) -> str:
        return f"{self.category.value}:{type(self.error).__name__}:{self.operation}"

    def format_log_message(self) -> str:
        lines = [
            f"{self.operation} failed [{self.severity.value.upper()}]",
            f"  Category: {self.category.value}",
            f"  Error: {type(self.error).__name__}: {self.error}",
        ]

        if isinstance(self.error, ExecutionError) and self.error.exit_code is not None:
            lines.append(f"  Exit code: {self.error.exit_code}")

        for key, value in self.details.items():
            lines.append(f"  {key}: {value}")

        cause = self.error.__cause__
        while cause is not None:
            lines.append(f"  Caused by: {type(cause).__name__}: {cause}")
            cause = cause.__cause__

        return '\n'.join(lines)


class RepeatSuppressor:
    """
    Tracks recently reported failures by key.

    Thread-safe; the first report of a key inside the window is logged in
    full and later ones are counted.
    """

    def __init__(self, window_seconds: float = REPEAT_WINDOW_SECONDS):
        self._window = window_seconds
        self._lock = threading.Lock()
        self._first_seen: Dict[str, float] = {}
        self._counts: Dict[str, int] = {}

    def record(self, key: str) -> int:
        """Record one occurrence and return how many fell inside the window."""
        now = time.monotonic()
        with self._lock:
            first = self._first_seen.get(key)
            if first is None or now - first >= self._window:
                self._first_seen[key] = now
                self._counts[key] = 1
            else:
                self._counts[key] += 1
            return self._counts[key]

    def count(self, key: str) -> int:
        with self._lock:
            return self._counts.get(key, 0)

    def clear(self) -> None:
        with self._lock:
            self._first_seen.clear()
            self._counts.clear()


_suppressor = RepeatSuppressor()


def get_repeat_suppressor() -> RepeatSuppressor:
    return _suppressor


def determine_severity(error: Exception, category: ErrorCategory) -> ErrorSeverity:
    if category == ErrorCategory.SECURITY:
        return ErrorSeverity.CRITICAL

    # A denied permission is an expected user decision
    if category == ErrorCategory.PERMISSION:
        return ErrorSeverity.WARNING

    if isinstance(error, ProcessTimedOutError):
        return ErrorSeverity.WARNING

    return ErrorSeverity.ERROR


def handle_error(
    error: Exception,
    operation: str,
    category: ErrorCategory = ErrorCategory.UNKNOWN,
    severity: Optional[ErrorSeverity] = None,
    additional_context: Optional[Dict[str, Any]] = None,
) -> ErrorContext:
    """
    Log a failure once with full context.

    The caller decides whether to re-raise; this only reports.

    Args:
        error: The exception that occurred
        operation: Name of the failed operation
        category: Pipeline stage of the failure
        severity: Overrides the category-derived severity
        additional_context: Extra key/value lines for the log record

    Returns:
        The ErrorContext that was reported
    """
    context = ErrorContext(
        error=error,
        category=category,
        severity=severity or determine_severity(error, category),
        operation=operation,
        details=additional_context or {},
    )

    occurrences = _suppressor.record(context.key)
    level = _LOG_LEVELS[context.severity]
    if occurrences == 1:
        logger.log(level, context.format_log_message())
    else:
        logger.log(
            level,
            f"[REPEATED x{occurrences}] {operation}: {type(error).__name__}: {error}"
        )

    return context


_ERRNO_DESCRIPTIONS = {
    errno.ENOENT: ('FileNotFoundError', 'No such file or directory'),
    errno.EACCES: ('PermissionError', 'Permission denied'),
    errno.EPERM: ('PermissionError', 'Operation not permitted'),
    errno.ENOEXEC: ('OSError', 'Exec format error'),
    errno.ENOTDIR: ('NotADirectoryError', 'Not a directory'),
    errno.EISDIR: ('IsADirectoryError', 'Is a directory'),
}


def normalize_platform_error(error: Exception) -> Tuple[str, str]:
    """Map an OS error to a (type, message) pair that does not vary by platform."""
    err_no = getattr(error, 'errno', None)
    if err_no in _ERRNO_DESCRIPTIONS:
        return _ERRNO_DESCRIPTIONS[err_no]
    return type(error).__name__, str(error)


def log_security_error(error: Exception, operation: str, **context) -> ErrorContext:
    """Report an allowlist or integrity violation at CRITICAL severity."""
    return handle_error(
        error,
        operation,
        category=ErrorCategory.SECURITY,
        additional_context=context,
    )


def log_platform_error(error: Exception, operation: str, **context) -> ErrorContext:
    """Report an OS-level spawn failure with its normalized description."""
    norm_type, norm_msg = normalize_platform_error(error)
    context['normalized'] = f"{norm_type}: {norm_msg}"
    return handle_error(
        error,
        operation,
        category=ErrorCategory.EXECUTION,
        additional_context=context,
    )


__all__ = [
    'ErrorCategory',
    'ErrorSeverity',
    'ErrorContext',
    'RepeatSuppressor',
    'get_repeat_suppressor',
    'determine_severity',
    'handle_error',
    'normalize_platform_error',
    'log_security_error',
    'log_platform_error',
]
