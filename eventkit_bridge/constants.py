"""
Centralized Constants Module for EventKit Bridge.

This module consolidates the timeouts, paths, markers and limits used by the
helper-invocation pipeline so that security-relevant values live in one
auditable place.

SECURITY: The allowlist defaults, size caps and timeouts here bound what the
bridge is willing to execute and for how long.

Usage:
    from eventkit_bridge.constants import Timeouts, BinaryPaths

    executor.run(path, args, timeout=Timeouts.HELPER_EXECUTION)
"""

import os
import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

ENV_PREFIX = "EVENTKIT_BRIDGE_"


# =============================================================================
# ENVIRONMENT VARIABLE OVERRIDE UTILITIES
# =============================================================================

T = TypeVar('T')


def _env_override(
    env_var: str,
    default: T,
    converter: Callable[[str], T] = str,
    validator: Optional[Callable[[T], bool]] = None,
    min_value: Optional[T] = None,
    max_value: Optional[T] = None,
) -> T:
    """Get a configuration value with environment variable override.

    SECURITY: Allows runtime tuning while keeping safe defaults. Values
    outside the given bounds or failing validation fall back to the default.

    Args:
        env_var: Environment variable name (will be prefixed with EVENTKIT_BRIDGE_)
        default: Default value if env var not set
        converter: Function to convert string to target type
        validator: Optional validation function
        min_value: Optional minimum allowed value
        max_value: Optional maximum allowed value

    Returns:
        Configured value (from env var if valid, otherwise default)
    """
    full_env_var = f"{ENV_PREFIX}{env_var}"
    env_value = os.environ.get(full_env_var)

    if env_value is None:
        return default

    try:
        converted = converter(env_value)

        if min_value is not None and converted < min_value:
            logger.warning(
                f"SECURITY: {full_env_var}={env_value} below minimum {min_value}, using default"
            )
            return default
        if max_value is not None and converted > max_value:
            logger.warning(
                f"SECURITY: {full_env_var}={env_value} above maximum {max_value}, using default"
            )
            return default

        if validator is not None and not validator(converted):
            logger.warning(
                f"SECURITY: {full_env_var}={env_value} failed validation, using default"
            )
            return default

        logger.info(f"Using {full_env_var}={converted} (override)")
        return converted

    except (ValueError, TypeError) as e:
        logger.warning(f"Invalid value for {full_env_var}: {e}, using default")
        return default


def _env_override_list(
    env_var: str,
    default: Tuple[str, ...],
    separator: str = os.pathsep,
    validator: Optional[Callable[[str], bool]] = None,
) -> Tuple[str, ...]:
    """Get a list configuration value with environment variable override.

    Args:
        env_var: Environment variable name (will be prefixed with EVENTKIT_BRIDGE_)
        default: Default tuple of values
        separator: Separator for parsing list values
        validator: Optional validation function for each item

    Returns:
        Configured tuple (from env var if valid, otherwise default)
    """
    full_env_var = f"{ENV_PREFIX}{env_var}"
    env_value = os.environ.get(full_env_var)

    if env_value is None:
        return default

    items = tuple(item.strip() for item in env_value.split(separator) if item.strip())

    if not items:
        logger.warning(f"Empty list for {full_env_var}, using default")
        return default

    if validator is not None:
        invalid_items = [item for item in items if not validator(item)]
        if invalid_items:
            logger.warning(
                f"SECURITY: Invalid items in {full_env_var}: {invalid_items}, using default"
            )
            return default

    logger.info(f"Using {full_env_var}={items} (override)")
    return items


# =============================================================================
# TIMEOUT CONSTANTS
# =============================================================================

@dataclass(frozen=True)
class Timeouts:
    """
    Centralized timeout values in seconds.

    The consent prompt waits on a human, so it has its own timeout separate
    from helper execution.
    """
    HELPER_EXECUTION: float = 30.0      # One helper invocation
    PERMISSION_CHECK: float = 5.0       # Read-only status probe
    CONSENT_PROMPT: float = 30.0        # User answering the OS dialog

    # Grace period for reaping a killed child
    KILL_GRACE: float = 2.0

    MINIMUM: float = 0.01
    MAXIMUM: float = 600.0


# =============================================================================
# ENVIRONMENTS
# =============================================================================

@dataclass(frozen=True)
class Environments:
    """Recognized values of EVENTKIT_BRIDGE_ENV."""
    PRODUCTION: str = "production"
    DEVELOPMENT: str = "development"
    TEST: str = "test"

    ALL: FrozenSet[str] = frozenset({"production", "development", "test"})


# =============================================================================
# BINARY PATH CONSTANTS
# =============================================================================

@dataclass(frozen=True)
class BinaryPaths:
    """
    Helper binary locations.

    SECURITY: Candidate paths are only ever accepted when they also fall
    under an allowlisted prefix.
    """
    BINARY_NAME: str = "EventKitCLI"

    # Relative to the project root
    BIN_SUBDIR: str = "bin"
    DIST_SUBDIR: str = "dist/swift/bin"

    # Returned without filesystem access in test mode
    MOCK_PATH: str = "/mock/path/to/EventKitCLI"

    SYSTEM_PREFIXES: Tuple[str, ...] = ("/usr/local/bin", "/opt/homebrew/bin")

    # Marker used to locate the project root
    PROJECT_MARKER: str = "setup.py"

    OSASCRIPT: str = "/usr/bin/osascript"


# =============================================================================
# PERMISSION CONSTANTS
# =============================================================================

@dataclass(frozen=True)
class PermissionConstants:
    """Helper status-check protocol and classification markers."""
    CHECK_PERMISSIONS_ARG: str = "--check-permissions"
    DOMAIN_ARG: str = "--domain"
    SUCCESS_MARKER: str = "EventKit permissions granted"

    # Lowercase substrings that flag helper output as a permission failure
    DENIAL_MARKERS: Tuple[str, ...] = ("permission", "authoriz")

    SETTINGS_PATH: str = "System Settings > Privacy & Security"


@dataclass(frozen=True)
class CalendarActions:
    """Helper actions that touch the Calendars permission domain."""
    ACTIONS: FrozenSet[str] = frozenset({
        "read-events",
        "read-calendars",
        "create-event",
        "update-event",
        "delete-event",
    })


# =============================================================================
# LIMITS
# =============================================================================

@dataclass(frozen=True)
class Limits:
    """Size and search limits."""
    MAX_BINARY_SIZE_PRODUCTION: int = 50 * 1024 * 1024
    MAX_BINARY_SIZE_RELAXED: int = 100 * 1024 * 1024

    # Walking up from the package to the project root
    MAX_DIRECTORY_SEARCH_DEPTH: int = 10

    # Truncation for output echoed into log lines
    LOG_OUTPUT_PREVIEW: int = 200

    HASH_CHUNK: int = 65536


# =============================================================================
# RUNTIME CONFIGURATION
# =============================================================================

class RuntimeConfig:
    """
    Runtime values that can be overridden via environment variables.

    Each getter takes the value from the lower configuration layers as its
    default, so an unset or rejected variable leaves that value in place.
    """
    @staticmethod
    def get_environment(default: str = Environments.PRODUCTION) -> str:
        """Get the active environment (production, development or test)."""
        return _env_override(
            "ENV",
            default,
            converter=lambda v: v.strip().lower(),
            validator=lambda v: v in Environments.ALL,
        )

    @staticmethod
    def get_execution_timeout(default: float = Timeouts.HELPER_EXECUTION) -> float:
        """Get helper execution timeout."""
        return _env_override(
            "EXECUTION_TIMEOUT", default, float,
            min_value=Timeouts.MINIMUM, max_value=Timeouts.MAXIMUM,
        )

    @staticmethod
    def get_permission_check_timeout(default: float = Timeouts.PERMISSION_CHECK) -> float:
        """Get permission status check timeout."""
        return _env_override(
            "PERMISSION_CHECK_TIMEOUT", default, float,
            min_value=Timeouts.MINIMUM, max_value=Timeouts.MAXIMUM,
        )

    @staticmethod
    def get_consent_timeout(default: float = Timeouts.CONSENT_PROMPT) -> float:
        """Get consent prompt timeout."""
        return _env_override(
            "CONSENT_TIMEOUT", default, float,
            min_value=Timeouts.MINIMUM, max_value=Timeouts.MAXIMUM,
        )

    @staticmethod
    def get_expected_sha256(default: Optional[str] = None) -> Optional[str]:
        """Get the digest the helper binary must match."""
        return _env_override("EXPECTED_SHA256", default)

    @staticmethod
    def get_extra_candidates() -> Tuple[str, ...]:
        """
        Get additional candidate binary paths (os.pathsep separated).

        SECURITY: Only honoured outside production. Relative entries are
        rejected.
        """
        return _env_override_list("BINARY_CANDIDATES", (), validator=os.path.isabs)

    @staticmethod
    def get_extra_allowed_prefixes() -> Tuple[str, ...]:
        """
        Get additional allowlist prefixes (os.pathsep separated).

        SECURITY: Only honoured outside production. Relative entries are
        rejected.
        """
        return _env_override_list("ALLOWED_PREFIXES", (), validator=os.path.isabs)


# =============================================================================
# CONVENIENCE EXPORTS
# =============================================================================

DEFAULT_TIMEOUT = Timeouts.HELPER_EXECUTION
MOCK_BINARY_PATH = BinaryPaths.MOCK_PATH


__all__ = [
    'ENV_PREFIX',
    'Timeouts',
    'Environments',
    'BinaryPaths',
    'PermissionConstants',
    'CalendarActions',
    'Limits',
    'RuntimeConfig',
    'DEFAULT_TIMEOUT',
    'MOCK_BINARY_PATH',
]
