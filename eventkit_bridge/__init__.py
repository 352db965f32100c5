"""
EventKit Bridge - Secure invocation of the native EventKit helper
"""

# Registers BridgeLogger before any package logger is created
from .logging_config import (
    setup_logging,
    configure_from_environment,
    get_logger,
)

from .constants import (
    Timeouts,
    Environments,
    BinaryPaths,
    PermissionConstants,
    CalendarActions,
    Limits,
    RuntimeConfig,
    DEFAULT_TIMEOUT,
    MOCK_BINARY_PATH,
)

from .models import PermissionDomain, PermissionFailure
from .exceptions import (
    BridgeError,
    ConfigError,
    BinaryResolutionError,
    BinaryNotFoundError,
    BinaryNotExecutableError,
    ExecutionError,
    SpawnFailedError,
    ProcessTimedOutError,
    DecodeFailedError,
    DeclaredFailureError,
    HelperExitError,
    PermissionDeniedError,
    TriggerFailedError,
)

from .execution import (
    BinaryConfig,
    BinaryResolver,
    ExecutionOutcome,
    OutcomeKind,
    ProcessExecutor,
    MockProcessExecutor,
    DecodedResult,
    decode,
    build_helper_args,
)
from .permissions import (
    ConsentPromptTrigger,
    PermissionStatus,
    PermissionStatusChecker,
    SystemPermissions,
    classify,
)
from .retry_coordinator import RetryCoordinator
from .config import BridgeSettings, load_bridge_settings
from .bridge import EventKitBridge, create_bridge

__version__ = "1.0.0"

__all__ = [
    # Logging
    'setup_logging',
    'configure_from_environment',
    'get_logger',
    # Constants
    'Timeouts',
    'Environments',
    'BinaryPaths',
    'PermissionConstants',
    'CalendarActions',
    'Limits',
    'RuntimeConfig',
    'DEFAULT_TIMEOUT',
    'MOCK_BINARY_PATH',
    # Models
    'PermissionDomain',
    'PermissionFailure',
    # Exceptions
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
    # Pipeline
    'BinaryConfig',
    'BinaryResolver',
    'ExecutionOutcome',
    'OutcomeKind',
    'ProcessExecutor',
    'MockProcessExecutor',
    'DecodedResult',
    'decode',
    'build_helper_args',
    'ConsentPromptTrigger',
    'PermissionStatus',
    'PermissionStatusChecker',
    'SystemPermissions',
    'classify',
    'RetryCoordinator',
    # Composition
    'BridgeSettings',
    'load_bridge_settings',
    'EventKitBridge',
    'create_bridge',
]
