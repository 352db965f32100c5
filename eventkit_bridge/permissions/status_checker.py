"""
Permission Status Checker - Read-only probe of the helper's access.

Runs the helper in its status-check mode with a short, dedicated timeout.
The probe is never retried and never triggers a consent prompt. Access
counts as granted only when the helper exits 0 AND prints the exact success
marker; any other output, even with exit code 0, is reported as not granted.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple

from ..constants import PermissionConstants, Timeouts
from ..exceptions import BinaryResolutionError, PermissionDeniedError
from ..execution.process_executor import OutcomeKind
from ..models import PermissionDomain
from .guidance import create_permission_error_details, generate_permission_guidance

logger = logging.getLogger(__name__)


@dataclass
class PermissionStatus:
    """Result of one status probe."""
    granted: bool
    error: Optional[str] = None
    requires_user_action: bool = False
    domain: Optional[PermissionDomain] = None

    def to_dict(self) -> Dict:
        return {
            'domain': self.domain.value if self.domain else None,
            'granted': self.granted,
            'error': self.error,
            'requires_user_action': self.requires_user_action,
        }


@dataclass
class SystemPermissions:
    """Status of every permission domain."""
    reminders: PermissionStatus
    calendars: PermissionStatus

    @property
    def all_granted(self) -> bool:
        return self.reminders.granted and self.calendars.granted

    def items(self) -> Iterator[Tuple[PermissionDomain, PermissionStatus]]:
        yield PermissionDomain.REMINDERS, self.reminders
        yield PermissionDomain.CALENDARS, self.calendars

    def to_dict(self) -> Dict:
        return {
            'reminders': self.reminders.to_dict(),
            'calendars': self.calendars.to_dict(),
            'all_granted': self.all_granted,
        }


def _not_granted(domain: PermissionDomain, error: str) -> PermissionStatus:
    return PermissionStatus(granted=False, error=error, requires_user_action=True, domain=domain)


class PermissionStatusChecker:
    """Probes helper permission status per domain."""

    def __init__(self, resolver, executor, timeout: float = Timeouts.PERMISSION_CHECK):
        self._resolver = resolver
        self._executor = executor
        self.timeout = timeout

    def check_status(self, domain: PermissionDomain) -> PermissionStatus:
        """Run the status probe for one domain."""
        try:
            binary_path = self._resolver.resolve()
        except BinaryResolutionError as e:
            return _not_granted(domain, f"Helper binary not available: {e}")

        args = [
            PermissionConstants.CHECK_PERMISSIONS_ARG,
            PermissionConstants.DOMAIN_ARG,
            domain.value,
        ]
        outcome = self._executor.run(binary_path, args, self.timeout)

        if outcome.kind == OutcomeKind.SPAWN_FAILED:
            return _not_granted(
                domain, f"Permission check failed for {domain.value}: {outcome.error}"
            )

        if outcome.kind == OutcomeKind.TIMED_OUT:
            return _not_granted(
                domain, f"Permission check timed out for {domain.value} after {self.timeout}s"
            )

        if outcome.exit_code == 0 and PermissionConstants.SUCCESS_MARKER in outcome.stdout:
            logger.debug(f"{domain.display_name} permission granted")
            return PermissionStatus(granted=True, requires_user_action=False, domain=domain)

        detail = outcome.stdout.strip() or outcome.stderr.strip() or (
            f"helper exited with code {outcome.exit_code}"
        )
        logger.info(f"{domain.display_name} permission not granted: {detail}")
        return _not_granted(domain, detail)

    def check_all(self) -> SystemPermissions:
        """Probe every domain, sequentially."""
        permissions = SystemPermissions(
            reminders=self.check_status(PermissionDomain.REMINDERS),
            calendars=self.check_status(PermissionDomain.CALENDARS),
        )
        logger.debug(
            f"Permission check results: reminders={permissions.reminders.granted}, "
            f"calendars={permissions.calendars.granted}"
        )
        return permissions

    def ensure_permissions(self) -> SystemPermissions:
        """
        Verify every domain is granted.

        Raises:
            PermissionDeniedError: for the first missing domain, with guidance
        """
        permissions = self.check_all()
        if permissions.all_granted:
            logger.debug("All permissions verified")
            return permissions

        guidance = generate_permission_guidance(permissions)
        details = create_permission_error_details(permissions)
        logger.error("Insufficient permissions:\n" + '\n'.join(details))

        domain, status = next((d, s) for d, s in permissions.items() if not s.granted)
        raise PermissionDeniedError(domain, status.error or "not granted", guidance=guidance)


__all__ = [
    'PermissionStatus',
    'SystemPermissions',
    'PermissionStatusChecker',
]
