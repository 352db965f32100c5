"""
Permission Classifier - Recognizes OS permission denial in helper output.

The helper reports denial as free text, so classification is a
case-insensitive substring search over stdout, stderr and any declared error
message. The domain comes only from the action name, never from output.

Known limitation: a generic marker such as "permission" also matches
unrelated errors that merely mention the word. This is accepted; the helper
exposes no dedicated error code to key on.
"""

from typing import Iterable, Optional

from ..constants import CalendarActions, PermissionConstants
from ..execution.process_executor import ExecutionOutcome, OutcomeKind
from ..models import PermissionDomain, PermissionFailure


def contains_denial_marker(
    text: str,
    markers: Iterable[str] = PermissionConstants.DENIAL_MARKERS,
) -> bool:
    """Check text for any permission-denial marker (case-insensitive)."""
    if not text:
        return False
    lowered = text.lower()
    return any(marker in lowered for marker in markers)


def infer_domain(action_name: str) -> PermissionDomain:
    """Map an action to its permission domain; anything not a calendar action is Reminders."""
    if (action_name or "").strip().lower() in CalendarActions.ACTIONS:
        return PermissionDomain.CALENDARS
    return PermissionDomain.REMINDERS


def classify(
    outcome: ExecutionOutcome,
    action_name: str,
    declared_message: Optional[str] = None,
) -> Optional[PermissionFailure]:
    """
    Decide whether a failed helper run was a permission denial.

    Timeouts and spawn failures are never permission issues.

    Returns:
        PermissionFailure when a marker matches, otherwise None
    """
    if outcome.kind != OutcomeKind.COMPLETED:
        return None

    parts = [outcome.stdout, outcome.stderr, declared_message or ""]
    if not contains_denial_marker('\n'.join(parts)):
        return None

    raw_message = (declared_message or outcome.combined_output()).strip()
    return PermissionFailure(domain=infer_domain(action_name), raw_message=raw_message)


__all__ = [
    'contains_denial_marker',
    'infer_domain',
    'classify',
]
