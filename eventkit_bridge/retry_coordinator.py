"""
Retry Coordinator - Runs one helper action with bounded permission recovery.

A logical call walks a fixed sequence with no edge back to an earlier state:

    ATTEMPT_1 --success--------------------------------------------> done
              --non-permission failure-------------------------------> raise
              --permission failure--> CONSENT --> ATTEMPT_2 --success--> done
                                                            --failure--> raise

So every call executes the helper once or twice and triggers the consent
prompt at most once. Only decode failures and declared error envelopes are
checked for a permission signature; missing binaries, spawn failures and
timeouts are raised immediately.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from .constants import Timeouts
from .exceptions import (
    BinaryResolutionError,
    DecodeFailedError,
    DeclaredFailureError,
    ExecutionError,
    HelperExitError,
    PermissionDeniedError,
    ProcessTimedOutError,
    SpawnFailedError,
    TriggerFailedError,
)
from .execution.process_executor import ExecutionOutcome, OutcomeKind, validate_argv
from .execution.protocol import with_action
from .execution.result_decoder import decode
from .logging_config import get_logger
from .models import PermissionFailure
from .permissions.classifier import classify
from .permissions.guidance import domain_guidance
from .utils.error_handling import ErrorCategory, handle_error

logger = get_logger(__name__)


class CallState(Enum):
    ATTEMPT_1 = "attempt_1"
    CONSENT = "consent"
    ATTEMPT_2 = "attempt_2"


@dataclass
class RetryState:
    """Per-call bookkeeping; never shared between calls."""
    action: str
    attempts: int = 0
    consent_triggered: bool = False


def interpret_outcome(outcome: ExecutionOutcome) -> Any:
    """
    Turn a raw outcome into the helper's result payload.

    Raises:
        SpawnFailedError, ProcessTimedOutError, DecodeFailedError,
        DeclaredFailureError, HelperExitError
    """
    if outcome.kind == OutcomeKind.SPAWN_FAILED:
        raise SpawnFailedError(f"Failed to start helper: {outcome.error}")

    if outcome.kind == OutcomeKind.TIMED_OUT:
        raise ProcessTimedOutError(
            f"Helper timed out after {outcome.timeout}s and was killed",
            timeout=outcome.timeout,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
        )

    try:
        decoded = decode(outcome.stdout)
    except DecodeFailedError as e:
        raise DecodeFailedError(
            f"{e} (exit code {outcome.exit_code})",
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            exit_code=outcome.exit_code,
        ) from e

    if not decoded.is_success:
        raise DeclaredFailureError(
            decoded.message,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            exit_code=outcome.exit_code,
        )

    if outcome.exit_code != 0:
        raise HelperExitError(
            f"Helper reported success but exited with code {outcome.exit_code}",
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            exit_code=outcome.exit_code,
        )

    return decoded.value


class RetryCoordinator:
    """
    Executes helper actions, recovering once from permission denial.

    Collaborators are injected so the same coordinator runs against the real
    helper, the test-mode mock, or recording fakes.
    """

    def __init__(
        self,
        resolver,
        executor,
        consent_trigger,
        timeout: float = Timeouts.HELPER_EXECUTION,
    ):
        self._resolver = resolver
        self._executor = executor
        self._consent_trigger = consent_trigger
        self.timeout = timeout

    def execute(self, action_name: str, args: Sequence[str] = ()) -> Any:
        """
        Run `--action action_name` plus args and return the result payload.

        Raises:
            BinaryResolutionError: the helper could not be located
            PermissionDeniedError: denial persisted after the consent prompt
            ExecutionError: any other failure, reported verbatim
        """
        argv = with_action(action_name, validate_argv(args))
        state = RetryState(action=action_name)

        try:
            binary_path = self._resolver.resolve()
        except BinaryResolutionError as e:
            handle_error(e, "resolve_helper_binary", ErrorCategory.BINARY,
                         additional_context={'action': action_name})
            raise

        logger.pipeline_start("helper_call", action=action_name, arg_count=len(argv) - 2)

        # ATTEMPT_1
        outcome = self._run(binary_path, argv, state, CallState.ATTEMPT_1)
        try:
            value = interpret_outcome(outcome)
        except (DecodeFailedError, DeclaredFailureError) as e:
            failure = self._classify(outcome, action_name, e)
            if failure is None:
                self._fail(e, state)
                raise
        except ExecutionError as e:
            self._fail(e, state)
            raise
        else:
            logger.pipeline_end("helper_call", True, action=action_name, attempts=state.attempts)
            return value

        # CONSENT
        trigger_error = self._request_consent(failure, state)

        # ATTEMPT_2
        outcome = self._run(binary_path, argv, state, CallState.ATTEMPT_2)
        try:
            value = interpret_outcome(outcome)
        except (DecodeFailedError, DeclaredFailureError) as e:
            failure = self._classify(outcome, action_name, e)
            if failure is None:
                self._fail(e, state)
                raise
            denied = PermissionDeniedError(
                failure.domain,
                failure.raw_message,
                guidance=domain_guidance(failure.domain),
                trigger_error=trigger_error,
            )
            self._fail(denied, state)
            raise denied from (trigger_error or e)
        except ExecutionError as e:
            self._fail(e, state)
            raise

        logger.pipeline_end(
            "helper_call", True, action=action_name,
            attempts=state.attempts, consent_triggered=state.consent_triggered,
        )
        return value

    def _run(self, binary_path: str, argv, state: RetryState, step: CallState) -> ExecutionOutcome:
        state.attempts += 1
        logger.pipeline_step(step.value, action=state.action)
        return self._executor.run(binary_path, argv, self.timeout)

    def _classify(self, outcome: ExecutionOutcome, action_name: str,
                  error: ExecutionError) -> Optional[PermissionFailure]:
        declared = error.declared_message if isinstance(error, DeclaredFailureError) else None
        failure = classify(outcome, action_name, declared)
        if failure is not None:
            logger.info(
                f"Helper action '{action_name}' failed with a {failure.domain.value} "
                f"permission signature"
            )
        return failure

    def _request_consent(self, failure: PermissionFailure,
                         state: RetryState) -> Optional[TriggerFailedError]:
        logger.pipeline_step(CallState.CONSENT.value, domain=failure.domain.value)
        state.consent_triggered = True
        try:
            self._consent_trigger.trigger(failure.domain)
        except TriggerFailedError as e:
            handle_error(e, "trigger_consent_prompt", ErrorCategory.PERMISSION,
                         additional_context={'action': state.action,
                                             'domain': failure.domain.value})
            return e
        return None

    def _fail(self, error: Exception, state: RetryState) -> None:
        if isinstance(error, PermissionDeniedError):
            category = ErrorCategory.PERMISSION
        elif isinstance(error, DecodeFailedError):
            category = ErrorCategory.DECODE
        else:
            category = ErrorCategory.EXECUTION
        handle_error(
            error,
            "helper_call",
            category,
            additional_context={
                'action': state.action,
                'attempts': state.attempts,
                'consent_triggered': state.consent_triggered,
            },
        )
        logger.pipeline_end("helper_call", False, action=state.action,
                            attempts=state.attempts, error=type(error).__name__)


__all__ = [
    'CallState',
    'RetryState',
    'RetryCoordinator',
    'interpret_outcome',
]
