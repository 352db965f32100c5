"""
Operator-facing guidance for missing permissions.
"""

from typing import List, TYPE_CHECKING

from ..constants import PermissionConstants
from ..models import PermissionDomain

if TYPE_CHECKING:
    from .status_checker import SystemPermissions


def settings_location(domain: PermissionDomain) -> str:
    return f"{PermissionConstants.SETTINGS_PATH} > {domain.display_name}"


def domain_guidance(domain: PermissionDomain) -> str:
    """Steps for granting access to one domain."""
    return '\n'.join([
        f"{domain.display_name} access is not granted:",
        f"   - Open {settings_location(domain)}",
        "   - Find your terminal or host application in the list",
        "   - Enable access by toggling the switch",
    ])


def generate_permission_guidance(permissions: 'SystemPermissions') -> str:
    """Build the full guidance text for a permission report."""
    if permissions.all_granted:
        return "All required permissions are granted."

    sections: List[str] = ["EventKit Bridge requires the following permissions:", ""]
    for domain, status in permissions.items():
        if status.granted:
            sections.append(f"{domain.display_name} access: granted")
        else:
            sections.append(domain_guidance(domain))
        sections.append("")

    sections.extend([
        "After granting permissions:",
        "   1. Restart your terminal or host application",
        "   2. Run the command again",
    ])
    return '\n'.join(sections)


def create_permission_error_details(permissions: 'SystemPermissions') -> List[str]:
    """One line per missing domain with the probe's error text."""
    return [
        f"{domain.display_name}: {status.error or 'not granted'}"
        for domain, status in permissions.items()
        if not status.granted
    ]


__all__ = [
    'settings_location',
    'domain_guidance',
    'generate_permission_guidance',
    'create_permission_error_details',
]
