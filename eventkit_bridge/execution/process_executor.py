"""
Process Executor - Runs the helper binary with a hard wall-clock timeout.

SECURITY: Arguments are always passed as a discrete vector with shell=False;
nothing is ever joined into a shell command line, so user-supplied titles,
notes or URLs cannot inject shell syntax.

Both output pipes are drained while the child runs (Popen.communicate), so a
helper that writes more than a pipe buffer before exiting cannot deadlock
the caller. On timeout the child and all of its descendants are killed and
whatever output was produced is still returned.
"""

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence

import psutil

from ..constants import Limits, Timeouts
from ..utils.error_handling import log_platform_error, normalize_platform_error

logger = logging.getLogger(__name__)


class OutcomeKind(Enum):
    """How a child process ended."""
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    SPAWN_FAILED = "spawn_failed"


@dataclass(frozen=True)
class ExecutionOutcome:
    """Raw result of a single process run."""
    kind: OutcomeKind
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None
    timeout: Optional[float] = None
    duration: float = 0.0

    @classmethod
    def completed(cls, exit_code: int, stdout: str, stderr: str,
                  duration: float = 0.0) -> 'ExecutionOutcome':
        return cls(OutcomeKind.COMPLETED, exit_code=exit_code,
                   stdout=stdout, stderr=stderr, duration=duration)

    @classmethod
    def timed_out(cls, timeout: float, stdout: str = "", stderr: str = "",
                  duration: float = 0.0) -> 'ExecutionOutcome':
        return cls(OutcomeKind.TIMED_OUT, stdout=stdout, stderr=stderr,
                   timeout=timeout, duration=duration)

    @classmethod
    def spawn_failed(cls, cause: str) -> 'ExecutionOutcome':
        return cls(OutcomeKind.SPAWN_FAILED, error=cause)

    @property
    def is_completed(self) -> bool:
        return self.kind == OutcomeKind.COMPLETED

    @property
    def succeeded(self) -> bool:
        return self.kind == OutcomeKind.COMPLETED and self.exit_code == 0

    def combined_output(self) -> str:
        """stdout and stderr joined, for diagnostics and classification."""
        return '\n'.join(part for part in (self.stdout, self.stderr) if part)

    def to_dict(self) -> Dict:
        return {
            'kind': self.kind.value,
            'exit_code': self.exit_code,
            'stdout': self.stdout,
            'stderr': self.stderr,
            'error': self.error,
            'timeout': self.timeout,
            'duration': round(self.duration, 3),
        }


def validate_argv(args: Sequence[str]) -> list:
    """Ensure every argument is a string; returns a copy as a list."""
    if isinstance(args, (str, bytes)):
        raise TypeError("args must be a sequence of strings, not a single string")
    argv = list(args)
    for index, arg in enumerate(argv):
        if not isinstance(arg, str):
            raise TypeError(
                f"argument {index} must be str, got {type(arg).__name__}"
            )
    return argv


def _preview(text: str) -> str:
    text = text.strip()
    if len(text) > Limits.LOG_OUTPUT_PREVIEW:
        return text[:Limits.LOG_OUTPUT_PREVIEW] + '...'
    return text


class ProcessExecutor:
    """
    Spawns one child process per run() call and waits for its outcome.

    The call is synchronous: it returns only once the child has exited,
    been killed for exceeding its timeout, or failed to start.
    """

    def __init__(
        self,
        env: Optional[Dict[str, str]] = None,
        kill_grace: float = Timeouts.KILL_GRACE,
    ):
        self._env = dict(env) if env is not None else None
        self._kill_grace = kill_grace

    def run(self, path: str, args: Sequence[str], timeout: float) -> ExecutionOutcome:
        """
        Execute path with args.

        Args:
            path: Executable to run
            args: Argument vector (excluding the executable itself)
            timeout: Wall-clock limit in seconds

        Returns:
            ExecutionOutcome describing completion, timeout or spawn failure
        """
        argv = validate_argv(args)
        if timeout is None or timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout!r}")

        logger.debug(f"Spawning {os.path.basename(path)} with {len(argv)} args (timeout={timeout}s)")
        started = time.monotonic()

        try:
            proc = subprocess.Popen(
                [path] + argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                shell=False,
                close_fds=True,
                env=self._env,
                text=True,
                encoding='utf-8',
                errors='replace',
            )
        except (OSError, ValueError) as e:
            log_platform_error(e, "spawn_helper", path=path)
            norm_type, norm_msg = normalize_platform_error(e)
            return ExecutionOutcome.spawn_failed(f"{norm_type}: {norm_msg} ({path})")

        try:
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            self._kill_process_tree(proc)
            stdout, stderr = self._collect_after_kill(proc)
            duration = time.monotonic() - started
            logger.warning(
                f"{os.path.basename(path)} exceeded {timeout}s timeout; killed after {duration:.2f}s"
            )
            return ExecutionOutcome.timed_out(timeout, stdout, stderr, duration)

        duration = time.monotonic() - started
        logger.debug(
            f"{os.path.basename(path)} exited with code {proc.returncode} in {duration:.2f}s"
        )
        if proc.returncode != 0 and stderr:
            logger.debug(f"stderr: {_preview(stderr)}")

        return ExecutionOutcome.completed(proc.returncode, stdout or "", stderr or "", duration)

    def _kill_process_tree(self, proc: subprocess.Popen) -> None:
        """Kill the child and every descendant it spawned."""
        try:
            children = psutil.Process(proc.pid).children(recursive=True)
        except psutil.Error:
            children = []

        for child in children:
            try:
                child.kill()
            except psutil.NoSuchProcess:
                pass
            except psutil.AccessDenied as e:
                logger.warning(f"Cannot kill helper descendant {child.pid}: {e}")

        try:
            proc.kill()
        except OSError:
            # Already reaped
            pass

    def _collect_after_kill(self, proc: subprocess.Popen):
        try:
            stdout, stderr = proc.communicate(timeout=self._kill_grace)
            return stdout or "", stderr or ""
        except subprocess.TimeoutExpired:
            logger.error(f"Helper pid {proc.pid} did not exit within {self._kill_grace}s of SIGKILL")
            for stream in (proc.stdout, proc.stderr):
                if stream is not None:
                    stream.close()
            return "", ""


__all__ = [
    'OutcomeKind',
    'ExecutionOutcome',
    'ProcessExecutor',
    'validate_argv',
]
