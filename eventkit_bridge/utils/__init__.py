"""
Utility modules for EventKit Bridge.

Provides common utilities including:
- Error reporting with repeat suppression
- Errno normalization for spawn failures
"""

from .error_handling import (
    ErrorCategory,
    ErrorSeverity,
    ErrorContext,
    RepeatSuppressor,
    get_repeat_suppressor,
    determine_severity,
    handle_error,
    normalize_platform_error,
    log_security_error,
    log_platform_error,
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
