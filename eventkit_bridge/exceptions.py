"""
EventKit Bridge Exceptions

Typed errors surfaced by the helper-invocation pipeline. Binary resolution
errors are fatal for a call, execution errors are reported verbatim, and only
decode and declared failures can turn into a PermissionDeniedError.
"""

from typing import List, Optional, Tuple

from .models import PermissionDomain


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    def __init__(self, message: str, reason: str = None):
        super().__init__(message)
        self.reason = reason or message


class ConfigError(BridgeError):
    """Raised when bridge settings are malformed."""
    pass


# =============================================================================
# BINARY RESOLUTION
# =============================================================================

class BinaryResolutionError(BridgeError):
    """Raised when no candidate passes validation."""

    def __init__(self, message: str, attempted: Optional[List[Tuple[str, str]]] = None):
        super().__init__(message)
        self.attempted: List[Tuple[str, str]] = list(attempted or [])

    def describe_attempts(self) -> str:
        if not self.attempted:
            return "  (no candidates configured)"
        return '\n'.join(f"  {path}: {reason}" for path, reason in self.attempted)


class BinaryNotFoundError(BinaryResolutionError):
    """Raised when no candidate exists inside the allowlist."""
    pass


class BinaryNotExecutableError(BinaryResolutionError):
    """Raised when the only allowlisted candidates lack the executable bit."""
    pass


# =============================================================================
# EXECUTION
# =============================================================================

class ExecutionError(BridgeError):
    """Base class for failures of a single helper invocation."""

    def __init__(
        self,
        message: str,
        stdout: str = "",
        stderr: str = "",
        exit_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr
        self.exit_code = exit_code


class SpawnFailedError(ExecutionError):
    """Raised when the helper process could not be started."""
    pass


class ProcessTimedOutError(ExecutionError):
    """Raised when the helper exceeded its wall-clock timeout and was killed."""

    def __init__(self, message: str, timeout: float, stdout: str = "", stderr: str = ""):
        super().__init__(message, stdout=stdout, stderr=stderr)
        self.timeout = timeout


class DecodeFailedError(ExecutionError):
    """Raised when helper stdout is not a well-formed result envelope."""
    pass


class DeclaredFailureError(ExecutionError):
    """Raised when the helper emitted an error envelope."""

    def __init__(self, message: str, stdout: str = "", stderr: str = "",
                 exit_code: Optional[int] = None):
        super().__init__(message, stdout=stdout, stderr=stderr, exit_code=exit_code)
        self.declared_message = message


class HelperExitError(ExecutionError):
    """Raised when the helper exits non-zero despite a success envelope."""
    pass


# =============================================================================
# PERMISSIONS
# =============================================================================

class PermissionDeniedError(BridgeError):
    """Raised when a call still fails with a permission signature after consent."""

    def __init__(
        self,
        domain: PermissionDomain,
        raw_message: str,
        guidance: str = "",
        trigger_error: Optional['TriggerFailedError'] = None,
    ):
        message = f"{domain.display_name} permission denied: {raw_message}"
        if guidance:
            message = f"{message}\n\n{guidance}"
        super().__init__(message, reason=raw_message)
        self.domain = domain
        self.raw_message = raw_message
        self.guidance = guidance
        self.trigger_error = trigger_error


class TriggerFailedError(BridgeError):
    """Raised when the OS consent prompt could not be triggered."""

    def __init__(self, domain: PermissionDomain, detail: str):
        super().__init__(
            f"Failed to trigger {domain.value} permission prompt: {detail}",
            reason=detail,
        )
        self.domain = domain
        self.detail = detail


__all__ = [
    'BridgeError',
    'ConfigError',
    'BinaryResolutionError',
    'BinaryNotFoundError',
    'BinaryNotExecutableError',
    'ExecutionError',
    'SpawnFailedError',
    'ProcessTimedOutError',
    'DecodeFailedError',
    'DeclaredFailureError',
    'HelperExitError',
    'PermissionDeniedError',
    'TriggerFailedError',
]
