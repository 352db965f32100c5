"""
Result Decoder - Parses the helper's JSON result envelope.

The helper prints exactly one JSON object on stdout:

    {"status": "success", "result": <any JSON value>}
    {"status": "error", "message": "<text>"}

A well-formed error envelope decodes to a FAILURE result. Anything else
(empty output, non-JSON, wrong shape, unknown status) raises
DecodeFailedError. Keeping the two apart matters because some permission
failures never reach a clean error envelope.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..exceptions import DecodeFailedError

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"


class DecodedStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class DecodedResult:
    """A structurally valid helper envelope."""
    status: DecodedStatus
    value: Any = None
    message: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> 'DecodedResult':
        return cls(DecodedStatus.SUCCESS, value=value)

    @classmethod
    def failure(cls, message: str) -> 'DecodedResult':
        return cls(DecodedStatus.FAILURE, message=message)

    @property
    def is_success(self) -> bool:
        return self.status == DecodedStatus.SUCCESS


def decode(stdout: str) -> DecodedResult:
    """
    Decode helper stdout.

    Raises:
        DecodeFailedError: stdout is not a well-formed envelope
    """
    text = (stdout or "").strip()
    if not text:
        raise DecodeFailedError("Helper produced no output", stdout=stdout or "")

    try:
        envelope = json.loads(text)
    except ValueError as e:
        raise DecodeFailedError(f"Helper output is not valid JSON: {e}", stdout=stdout) from e

    if not isinstance(envelope, dict):
        raise DecodeFailedError(
            f"Helper output is a JSON {type(envelope).__name__}, expected an object",
            stdout=stdout,
        )

    status = envelope.get('status')
    if status == STATUS_SUCCESS:
        if 'result' not in envelope:
            raise DecodeFailedError("Success envelope is missing 'result'", stdout=stdout)
        return DecodedResult.success(envelope['result'])

    if status == STATUS_ERROR:
        message = envelope.get('message')
        if not isinstance(message, str):
            raise DecodeFailedError("Error envelope is missing a string 'message'", stdout=stdout)
        return DecodedResult.failure(message)

    raise DecodeFailedError(f"Unknown envelope status: {status!r}", stdout=stdout)


__all__ = [
    'DecodedStatus',
    'DecodedResult',
    'decode',
]
