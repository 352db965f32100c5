"""
Permission handling: denial classification, consent prompts and status probes.
"""

from .classifier import classify, contains_denial_marker, infer_domain
from .consent_prompt import APPLESCRIPT_SNIPPETS, ConsentPromptTrigger
from .guidance import (
    create_permission_error_details,
    domain_guidance,
    generate_permission_guidance,
)
from .status_checker import PermissionStatus, PermissionStatusChecker, SystemPermissions

__all__ = [
    'classify',
    'contains_denial_marker',
    'infer_domain',
    'APPLESCRIPT_SNIPPETS',
    'ConsentPromptTrigger',
    'create_permission_error_details',
    'domain_guidance',
    'generate_permission_guidance',
    'PermissionStatus',
    'PermissionStatusChecker',
    'SystemPermissions',
]
