"""
EventKit Bridge - Composition root for the helper pipeline.

One EventKitBridge is built per process from BridgeSettings. It owns the
single BinaryResolver (and therefore the resolved-path cache) and hands the
same resolver and executor to every component, so there is no module-level
state to reset between tests.

Usage:
    from eventkit_bridge import create_bridge

    bridge = create_bridge()
    reminders = bridge.run_action("read", show_completed=False)
"""

from typing import Any, Optional, Sequence

from .config import BridgeSettings, load_bridge_settings
from .execution.binary_resolver import BinaryResolver
from .execution.mock_executor import MockProcessExecutor
from .execution.process_executor import ProcessExecutor
from .execution.protocol import build_field_args
from .logging_config import get_logger
from .models import PermissionDomain
from .permissions.consent_prompt import ConsentPromptTrigger
from .permissions.status_checker import (
    PermissionStatus,
    PermissionStatusChecker,
    SystemPermissions,
)
from .retry_coordinator import RetryCoordinator

logger = get_logger(__name__)


class EventKitBridge:
    """
    Public entry point for invoking the native helper.

    Collaborators may be injected; anything not supplied is built from
    settings. In test mode the executor defaults to MockProcessExecutor, so
    neither the helper nor osascript is ever launched.
    """

    def __init__(
        self,
        settings: BridgeSettings,
        resolver: Optional[BinaryResolver] = None,
        executor=None,
        consent_trigger=None,
    ):
        self.settings = settings
        self.resolver = resolver or BinaryResolver(
            settings.to_binary_config(),
            test_mode=settings.is_test_mode,
        )
        if executor is None:
            executor = MockProcessExecutor() if settings.is_test_mode else ProcessExecutor()
        self.executor = executor
        self.consent_trigger = consent_trigger or ConsentPromptTrigger(
            executor, timeout=settings.consent_timeout
        )
        self.coordinator = RetryCoordinator(
            self.resolver,
            self.executor,
            self.consent_trigger,
            timeout=settings.execution_timeout,
        )
        self.status_checker = PermissionStatusChecker(
            self.resolver,
            self.executor,
            timeout=settings.permission_check_timeout,
        )

        if settings.is_test_mode:
            logger.notice("EventKit bridge running in test mode (helper calls are mocked)")

    def binary_path(self) -> str:
        """Resolved helper path; raises BinaryResolutionError when unavailable."""
        return self.resolver.resolve()

    def execute(self, action: str, args: Sequence[str] = ()) -> Any:
        """Run an action with pre-built field arguments."""
        return self.coordinator.execute(action, args)

    def run_action(self, action: str, **fields: Any) -> Any:
        """Run an action, building `--camelCase value` arguments from keyword fields."""
        return self.coordinator.execute(action, build_field_args(fields))

    def check_status(self, domain: PermissionDomain) -> PermissionStatus:
        return self.status_checker.check_status(domain)

    def check_all_permissions(self) -> SystemPermissions:
        return self.status_checker.check_all()

    def ensure_permissions(self) -> SystemPermissions:
        return self.status_checker.ensure_permissions()

    def request_permission(self, domain: PermissionDomain) -> None:
        """Show the OS consent dialog for domain without running the helper."""
        self.consent_trigger.trigger(domain)


def create_bridge(settings: Optional[BridgeSettings] = None) -> EventKitBridge:
    """Build a bridge, loading settings from file and environment when not given."""
    if settings is None:
        settings = load_bridge_settings()
    return EventKitBridge(settings)


__all__ = [
    'EventKitBridge',
    'create_bridge',
]
