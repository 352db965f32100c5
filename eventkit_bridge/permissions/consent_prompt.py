"""
Consent Prompt Trigger - Makes macOS show its native permission dialog.

Asking Reminders or Calendar for its top-level collections through
AppleScript is intercepted by the OS, which shows the consent dialog when
access has not been decided yet. The call returns quickly when access is
already granted and otherwise blocks until the user answers, bounded by the
consent timeout.

Concurrent requests for the same domain share one dialog: later callers wait
for the prompt already on screen and receive its result.
"""

import logging
import threading
from typing import Dict, Optional

from ..constants import BinaryPaths, Timeouts
from ..exceptions import TriggerFailedError
from ..execution.process_executor import OutcomeKind
from ..models import PermissionDomain

logger = logging.getLogger(__name__)

APPLESCRIPT_SNIPPETS: Dict[PermissionDomain, str] = {
    PermissionDomain.REMINDERS: 'tell application "Reminders" to get the name of every list',
    PermissionDomain.CALENDARS: 'tell application "Calendar" to get the name of every calendar',
}


class _PendingPrompt:
    def __init__(self):
        self.done = threading.Event()
        self.error: Optional[TriggerFailedError] = None


class ConsentPromptTrigger:
    """
    Runs the per-domain AppleScript through an executor.

    The executor is the same abstraction used for the helper, so test mode
    never launches osascript.
    """

    def __init__(
        self,
        executor,
        timeout: float = Timeouts.CONSENT_PROMPT,
        osascript_path: str = BinaryPaths.OSASCRIPT,
    ):
        self._executor = executor
        self.timeout = timeout
        self.osascript_path = osascript_path
        self._lock = threading.Lock()
        self._in_flight: Dict[PermissionDomain, _PendingPrompt] = {}

    def trigger(self, domain: PermissionDomain) -> None:
        """
        Surface the OS consent dialog for domain.

        Raises:
            TriggerFailedError: the script could not run, timed out or failed
        """
        with self._lock:
            pending = self._in_flight.get(domain)
            owner = pending is None
            if owner:
                pending = _PendingPrompt()
                self._in_flight[domain] = pending

        if not owner:
            logger.info(f"Joining in-flight {domain.value} permission prompt")
            if not pending.done.wait(self.timeout + Timeouts.KILL_GRACE):
                raise TriggerFailedError(domain, "timed out waiting for in-flight prompt")
            if pending.error is not None:
                raise TriggerFailedError(domain, pending.error.detail)
            return

        try:
            self._run_prompt(domain)
        except TriggerFailedError as e:
            pending.error = e
            raise
        finally:
            with self._lock:
                self._in_flight.pop(domain, None)
            pending.done.set()

    def _run_prompt(self, domain: PermissionDomain) -> None:
        script = APPLESCRIPT_SNIPPETS[domain]
        logger.info(f"Requesting {domain.value} access via system consent prompt")

        try:
            outcome = self._executor.run(self.osascript_path, ['-e', script], self.timeout)
        except Exception as e:
            raise TriggerFailedError(domain, str(e)) from e

        if outcome.kind == OutcomeKind.SPAWN_FAILED:
            raise TriggerFailedError(domain, outcome.error)

        if outcome.kind == OutcomeKind.TIMED_OUT:
            raise TriggerFailedError(
                domain, f"no response within {outcome.timeout}s"
            )

        if outcome.exit_code != 0:
            detail = outcome.stderr.strip() or f"osascript exited with code {outcome.exit_code}"
            raise TriggerFailedError(domain, detail)

        logger.info(f"{domain.display_name} consent prompt completed")


__all__ = [
    'APPLESCRIPT_SNIPPETS',
    'ConsentPromptTrigger',
]
