"""
Mock Process Executor - Stands in for real process execution in test mode.

Never spawns anything. Each run() is recorded; scripted outcomes are
returned in order, after which status checks receive the permission-granted
marker and every other call receives an empty success envelope.
"""

import json
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Union

from ..constants import PermissionConstants
from .process_executor import ExecutionOutcome, validate_argv

logger = logging.getLogger(__name__)

Responder = Callable[[str, List[str]], ExecutionOutcome]


@dataclass(frozen=True)
class RecordedCall:
    """One run() invocation seen by the mock."""
    path: str
    args: List[str]
    timeout: float


def default_response(path: str, args: List[str]) -> ExecutionOutcome:
    """Canned outcome used once the script is exhausted."""
    if PermissionConstants.CHECK_PERMISSIONS_ARG in args:
        return ExecutionOutcome.completed(
            0, f"{PermissionConstants.SUCCESS_MARKER}\n", ""
        )
    return ExecutionOutcome.completed(
        0, json.dumps({'status': 'success', 'result': {}}), ""
    )


class MockProcessExecutor:
    """Scriptable, thread-safe replacement for ProcessExecutor."""

    def __init__(
        self,
        outcomes: Optional[Iterable[Union[ExecutionOutcome, Exception]]] = None,
        responder: Optional[Responder] = None,
    ):
        self._script = list(outcomes or [])
        self._responder = responder or default_response
        self._lock = threading.Lock()
        self.calls: List[RecordedCall] = []

    def queue(self, *outcomes: Union[ExecutionOutcome, Exception]) -> 'MockProcessExecutor':
        """Append scripted outcomes; an Exception instance is raised instead."""
        with self._lock:
            self._script.extend(outcomes)
        return self

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def run(self, path: str, args: Sequence[str], timeout: float) -> ExecutionOutcome:
        argv = validate_argv(args)
        with self._lock:
            self.calls.append(RecordedCall(path, argv, timeout))
            scripted = self._script.pop(0) if self._script else None

        logger.debug(f"Mock run of {path} with {len(argv)} args")
        if isinstance(scripted, Exception):
            raise scripted
        if scripted is not None:
            return scripted
        return self._responder(path, argv)


__all__ = [
    'MockProcessExecutor',
    'RecordedCall',
    'default_response',
]
