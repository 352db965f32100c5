"""
Tests for the Retry Coordinator module.

Every scenario runs against a scripted MockProcessExecutor, a static
resolver and a recording consent trigger, so execution and prompt counts can
be asserted exactly.
"""

import os
import sys
from unittest.mock import patch

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from eventkit_bridge.exceptions import (
    BinaryNotFoundError,
    DecodeFailedError,
    DeclaredFailureError,
    HelperExitError,
    PermissionDeniedError,
    ProcessTimedOutError,
    SpawnFailedError,
    TriggerFailedError,
)
from eventkit_bridge.execution.mock_executor import MockProcessExecutor
from eventkit_bridge.execution.process_executor import ExecutionOutcome
from eventkit_bridge.models import PermissionDomain
from eventkit_bridge.retry_coordinator import RetryCoordinator, interpret_outcome

from conftest import (
    RecordingTrigger,
    StaticResolver,
    completed,
    error_json,
    success_json,
)


def _coordinator(executor, trigger=None, resolver=None, timeout=30):
    return RetryCoordinator(
        resolver or StaticResolver(),
        executor,
        trigger or RecordingTrigger(),
        timeout=timeout,
    )


# ===========================================================================
# Happy Path
# ===========================================================================

class TestSuccess:
    """Tests for calls that succeed on the first attempt."""

    def test_create_returns_result_without_consent(self):
        """A successful create returns its id; no retry and no prompt."""
        executor = MockProcessExecutor([completed(success_json({"id": "42"}))])
        trigger = RecordingTrigger()

        result = _coordinator(executor, trigger).execute("create", ["--title", "Buy milk"])

        assert result == {"id": "42"}
        assert executor.call_count == 1
        assert trigger.call_count == 0

    def test_argument_vector(self):
        executor = MockProcessExecutor([completed(success_json([]))])
        resolver = StaticResolver("/opt/app/bin/EventKitCLI")

        _coordinator(executor, resolver=resolver, timeout=12).execute(
            "read", ["--showCompleted", "false"]
        )

        call = executor.calls[0]
        assert call.path == "/opt/app/bin/EventKitCLI"
        assert call.args == ["--action", "read", "--showCompleted", "false"]
        assert call.timeout == 12

    def test_null_result(self):
        executor = MockProcessExecutor([completed(success_json(None))])
        assert _coordinator(executor).execute("delete", ["--id", "1"]) is None


# ===========================================================================
# Permission Recovery
# ===========================================================================

class TestPermissionRecovery:
    """Tests for the consent-then-retry path."""

    def test_calendar_denial_then_success(self):
        """Denied calendar read triggers the Calendars prompt and succeeds on retry."""
        executor = MockProcessExecutor([
            completed(stderr="Calendar access not authorized", exit_code=1),
            completed(success_json([{"title": "Standup"}])),
        ])
        trigger = RecordingTrigger()

        result = _coordinator(executor, trigger).execute("read-events")

        assert result == [{"title": "Standup"}]
        assert executor.call_count == 2
        assert trigger.domains == [PermissionDomain.CALENDARS]

    def test_declared_permission_error_then_success(self):
        executor = MockProcessExecutor([
            completed(error_json("Reminders permission denied"), exit_code=1),
            completed(success_json({"id": "7"})),
        ])
        trigger = RecordingTrigger()

        assert _coordinator(executor, trigger).execute("create") == {"id": "7"}
        assert trigger.domains == [PermissionDomain.REMINDERS]

    def test_retry_uses_identical_arguments(self):
        executor = MockProcessExecutor([
            completed(stdout="permission denied"),
            completed(success_json(1)),
        ])
        _coordinator(executor).execute("update", ["--id", "3", "--title", "x"])

        assert executor.calls[0].args == executor.calls[1].args

    def test_denied_twice_raises_permission_denied(self):
        """Persistent denial surfaces once: two executions, one prompt."""
        executor = MockProcessExecutor([
            completed(stderr="Calendar access not authorized", exit_code=1),
            completed(stderr="Calendar access not authorized", exit_code=1),
        ])
        trigger = RecordingTrigger()

        with pytest.raises(PermissionDeniedError) as exc_info:
            _coordinator(executor, trigger).execute("read-calendars")

        error = exc_info.value
        assert error.domain == PermissionDomain.CALENDARS
        assert "Calendar access not authorized" in error.raw_message
        assert "System Settings" in error.guidance
        assert error.trigger_error is None
        assert executor.call_count == 2
        assert trigger.call_count == 1

    def test_retry_failing_differently_reports_that_failure(self):
        """A non-permission failure on attempt 2 is reported as itself."""
        executor = MockProcessExecutor([
            completed(stdout="permission denied"),
            completed(error_json("Reminder not found"), exit_code=1),
        ])

        with pytest.raises(DeclaredFailureError, match="Reminder not found"):
            _coordinator(executor).execute("update")
        assert executor.call_count == 2

    def test_trigger_failure_still_retries(self):
        """A failed prompt is logged and the second attempt still runs."""
        executor = MockProcessExecutor([
            completed(stdout="permission denied"),
            completed(success_json({"ok": True})),
        ])
        trigger = RecordingTrigger(error="osascript missing")

        assert _coordinator(executor, trigger).execute("read") == {"ok": True}
        assert executor.call_count == 2
        assert trigger.call_count == 1

    def test_trigger_failure_attached_to_final_denial(self):
        executor = MockProcessExecutor([
            completed(stdout="permission denied"),
            completed(stdout="permission denied"),
        ])
        trigger = RecordingTrigger(error="user cancelled")

        with pytest.raises(PermissionDeniedError) as exc_info:
            _coordinator(executor, trigger).execute("read")

        error = exc_info.value
        assert isinstance(error.trigger_error, TriggerFailedError)
        assert error.trigger_error.detail == "user cancelled"
        assert error.__cause__ is error.trigger_error

    def test_never_more_than_two_attempts(self):
        """Even with denial queued forever, the helper runs at most twice."""
        denied = completed(stdout="permission denied")
        executor = MockProcessExecutor([denied] * 5)

        with pytest.raises(PermissionDeniedError):
            _coordinator(executor).execute("read")
        assert executor.call_count == 2

    def test_each_call_gets_its_own_retry(self):
        denied = completed(stdout="permission denied")
        executor = MockProcessExecutor([denied, completed(success_json(1)),
                                        denied, completed(success_json(2))])
        trigger = RecordingTrigger()
        coordinator = _coordinator(executor, trigger)

        assert coordinator.execute("read") == 1
        assert coordinator.execute("read") == 2
        assert trigger.call_count == 2


# ===========================================================================
# Non-Permission Failures
# ===========================================================================

class TestNonPermissionFailures:
    """Tests for failures that never trigger consent."""

    def test_declared_failure_no_retry(self):
        executor = MockProcessExecutor([completed(error_json("Invalid date format"), exit_code=1)])
        trigger = RecordingTrigger()

        with pytest.raises(DeclaredFailureError) as exc_info:
            _coordinator(executor, trigger).execute("create")

        assert exc_info.value.declared_message == "Invalid date format"
        assert executor.call_count == 1
        assert trigger.call_count == 0

    def test_malformed_output_no_retry(self):
        executor = MockProcessExecutor([completed(stdout="Segmentation fault", exit_code=139)])
        trigger = RecordingTrigger()

        with pytest.raises(DecodeFailedError) as exc_info:
            _coordinator(executor, trigger).execute("read")

        assert exc_info.value.exit_code == 139
        assert trigger.call_count == 0

    def test_timeout_no_retry(self):
        """A hung helper is reported as a timeout, never as a permission issue."""
        executor = MockProcessExecutor([
            ExecutionOutcome.timed_out(30, stdout="waiting for permission"),
        ])
        trigger = RecordingTrigger()

        with pytest.raises(ProcessTimedOutError) as exc_info:
            _coordinator(executor, trigger).execute("read")

        assert exc_info.value.timeout == 30
        assert executor.call_count == 1
        assert trigger.call_count == 0

    def test_spawn_failure_no_retry(self):
        executor = MockProcessExecutor([
            ExecutionOutcome.spawn_failed("PermissionError: Permission denied (/x)"),
        ])
        trigger = RecordingTrigger()

        with pytest.raises(SpawnFailedError):
            _coordinator(executor, trigger).execute("read")
        assert trigger.call_count == 0

    def test_binary_resolution_failure_propagates(self):
        """Resolution errors are fatal: nothing runs and no prompt is shown."""
        executor = MockProcessExecutor()
        trigger = RecordingTrigger()
        resolver = StaticResolver(error=BinaryNotFoundError("EventKitCLI not found"))

        with pytest.raises(BinaryNotFoundError):
            _coordinator(executor, trigger, resolver).execute("read")

        assert executor.call_count == 0
        assert trigger.call_count == 0

    def test_non_string_args_rejected_before_resolution(self):
        executor = MockProcessExecutor()
        resolver = StaticResolver()

        with pytest.raises(TypeError):
            _coordinator(executor, resolver=resolver).execute("create", ["--priority", 1])

        assert resolver.calls == 0
        assert executor.call_count == 0

    def test_empty_action_rejected(self):
        with pytest.raises(ValueError):
            _coordinator(MockProcessExecutor()).execute("")


# ===========================================================================
# Outcome Interpretation
# ===========================================================================

class TestInterpretOutcome:
    """Tests for mapping outcomes to payloads or typed errors."""

    def test_success_requires_zero_exit(self):
        with pytest.raises(HelperExitError):
            interpret_outcome(completed(success_json({"id": "1"}), exit_code=1))

    def test_declared_failure_keeps_streams(self):
        with pytest.raises(DeclaredFailureError) as exc_info:
            interpret_outcome(completed(error_json("boom"), stderr="trace", exit_code=1))
        assert exc_info.value.stderr == "trace"
        assert exc_info.value.exit_code == 1

    def test_decode_failure_mentions_exit_code(self):
        with pytest.raises(DecodeFailedError, match="exit code 5"):
            interpret_outcome(completed("", exit_code=5))


# ===========================================================================
# Logging
# ===========================================================================

class TestLogging:
    """Tests for what the coordinator logs."""

    def test_arguments_never_logged(self, caplog):
        """Field values can carry personal data and stay out of the logs."""
        executor = MockProcessExecutor([completed(success_json(1))])
        with caplog.at_level(5):
            _coordinator(executor).execute("create", ["--title", "Secret surgery appointment"])

        assert "Secret surgery appointment" not in caplog.text

    def test_trigger_failure_reported(self):
        executor = MockProcessExecutor([
            completed(stdout="permission denied"),
            completed(success_json(1)),
        ])
        trigger = RecordingTrigger(error="no osascript")

        with patch("eventkit_bridge.retry_coordinator.handle_error") as handle_error:
            _coordinator(executor, trigger).execute("read")

        handled = [c.args[0] for c in handle_error.call_args_list]
        assert any(isinstance(e, TriggerFailedError) for e in handled)
