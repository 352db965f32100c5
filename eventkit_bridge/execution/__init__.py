"""
Helper execution: locating, running and decoding the native helper.
"""

from .binary_resolver import (
    BinaryConfig,
    BinaryResolver,
    RejectionReason,
    path_matches_allowlist,
    sha256_file,
)
from .process_executor import (
    OutcomeKind,
    ExecutionOutcome,
    ProcessExecutor,
    validate_argv,
)
from .mock_executor import MockProcessExecutor, RecordedCall
from .result_decoder import DecodedStatus, DecodedResult, decode
from .protocol import build_helper_args, build_field_args, with_action

__all__ = [
    'BinaryConfig',
    'BinaryResolver',
    'RejectionReason',
    'path_matches_allowlist',
    'sha256_file',
    'OutcomeKind',
    'ExecutionOutcome',
    'ProcessExecutor',
    'validate_argv',
    'MockProcessExecutor',
    'RecordedCall',
    'DecodedStatus',
    'DecodedResult',
    'decode',
    'build_helper_args',
    'build_field_args',
    'with_action',
]
