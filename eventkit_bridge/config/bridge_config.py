"""
Bridge Settings - Layered configuration for the helper pipeline.

Settings are assembled in three layers, later layers winning:

1. Built-in defaults (see eventkit_bridge.constants)
2. An optional JSON or YAML settings file
3. EVENTKIT_BRIDGE_* environment variables

SECURITY: Unknown keys in a settings file are rejected rather than ignored,
so a misspelled allowlist or hash entry can never silently fall back to a
weaker default.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from ..constants import (
    BinaryPaths,
    Environments,
    Limits,
    RuntimeConfig,
    Timeouts,
)
from ..exceptions import ConfigError
from ..execution.binary_resolver import BinaryConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "EVENTKIT_BRIDGE_CONFIG"

_YAML_SUFFIXES = {'.yaml', '.yml'}
_JSON_SUFFIXES = {'.json'}


# =============================================================================
# ENVIRONMENT PROFILES
# =============================================================================

@dataclass(frozen=True)
class ValidationProfile:
    """Binary validation strictness for one environment."""
    max_file_size: int


ENVIRONMENT_PROFILES: Dict[str, ValidationProfile] = {
    Environments.PRODUCTION: ValidationProfile(
        max_file_size=Limits.MAX_BINARY_SIZE_PRODUCTION,
    ),
    Environments.DEVELOPMENT: ValidationProfile(
        max_file_size=Limits.MAX_BINARY_SIZE_RELAXED,
    ),
    # Test mode returns the mock path before any check runs
    Environments.TEST: ValidationProfile(
        max_file_size=Limits.MAX_BINARY_SIZE_RELAXED,
    ),
}


def find_project_root(start: Optional[Union[str, Path]] = None) -> Path:
    """
    Walk up from start looking for the project marker file.

    Falls back to the current working directory when no marker is found
    within the search depth.
    """
    current = Path(start) if start is not None else Path(__file__).resolve().parent
    for _ in range(Limits.MAX_DIRECTORY_SEARCH_DEPTH):
        if (current / BinaryPaths.PROJECT_MARKER).is_file():
            return current
        if current.parent == current:
            break
        current = current.parent
    logger.debug("Project root marker not found, using current directory")
    return Path.cwd()


def default_candidates(project_root: Union[str, Path]) -> List[str]:
    root = Path(project_root)
    return [
        str(root / BinaryPaths.BIN_SUBDIR / BinaryPaths.BINARY_NAME),
        str(root / BinaryPaths.DIST_SUBDIR / BinaryPaths.BINARY_NAME),
    ]


def default_allowed_prefixes(project_root: Union[str, Path]) -> List[str]:
    root = Path(project_root)
    return [
        str(root / BinaryPaths.BIN_SUBDIR),
        str(root / "dist"),
        *BinaryPaths.SYSTEM_PREFIXES,
    ]


# =============================================================================
# SETTINGS
# =============================================================================

@dataclass
class BridgeSettings:
    """
    Everything needed to build a bridge.

    Empty candidate or allowlist values mean "use the project defaults".
    A max_binary_size of None defers to the environment profile.
    """
    environment: str = Environments.PRODUCTION
    candidates: List[str] = field(default_factory=list)
    allowed_prefixes: List[str] = field(default_factory=list)
    binary_name: str = BinaryPaths.BINARY_NAME
    expected_sha256: Optional[str] = None
    max_binary_size: Optional[int] = None
    execution_timeout: float = Timeouts.HELPER_EXECUTION
    permission_check_timeout: float = Timeouts.PERMISSION_CHECK
    consent_timeout: float = Timeouts.CONSENT_PROMPT
    project_root: Optional[str] = None

    @property
    def is_test_mode(self) -> bool:
        return self.environment == Environments.TEST

    @property
    def profile(self) -> ValidationProfile:
        return ENVIRONMENT_PROFILES[self.environment]

    def validate(self) -> None:
        """
        Check value ranges and types.

        Raises:
            ConfigError: on the first invalid value
        """
        if self.environment not in Environments.ALL:
            raise ConfigError(
                f"Unknown environment '{self.environment}', "
                f"expected one of {sorted(Environments.ALL)}"
            )

        for name in ('candidates', 'allowed_prefixes'):
            value = getattr(self, name)
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigError(f"'{name}' must be a list of strings")

        relative = [p for p in self.allowed_prefixes if not os.path.isabs(os.path.expanduser(p))]
        if relative:
            raise ConfigError(f"'allowed_prefixes' must be absolute paths, got: {relative}")

        if not isinstance(self.binary_name, str) or not self.binary_name:
            raise ConfigError("'binary_name' must be a non-empty string")
        if os.sep in self.binary_name:
            raise ConfigError("'binary_name' must be a bare filename")

        if self.expected_sha256 is not None:
            digest = str(self.expected_sha256).strip().lower()
            if len(digest) != 64 or any(c not in '0123456789abcdef' for c in digest):
                raise ConfigError("'expected_sha256' must be a 64-character hex digest")

        if self.max_binary_size is not None:
            if isinstance(self.max_binary_size, bool) or not isinstance(self.max_binary_size, int) \
                    or self.max_binary_size <= 0:
                raise ConfigError("'max_binary_size' must be a positive integer")

        for name in ('execution_timeout', 'permission_check_timeout', 'consent_timeout'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"'{name}' must be a number")
            if not Timeouts.MINIMUM <= value <= Timeouts.MAXIMUM:
                raise ConfigError(
                    f"'{name}' must be between {Timeouts.MINIMUM} and {Timeouts.MAXIMUM} seconds"
                )

    def resolved_project_root(self) -> Path:
        if self.project_root:
            return Path(self.project_root)
        return find_project_root()

    def to_binary_config(self) -> BinaryConfig:
        """Build the resolver configuration, filling in project defaults."""
        root = self.resolved_project_root()
        candidates = self.candidates or default_candidates(root)
        if self.binary_name != BinaryPaths.BINARY_NAME and not self.candidates:
            candidates = [str(Path(c).with_name(self.binary_name)) for c in candidates]

        return BinaryConfig(
            candidates=candidates,
            allowed_prefixes=self.allowed_prefixes or default_allowed_prefixes(root),
            binary_name=self.binary_name,
            max_file_size=self.max_binary_size or self.profile.max_file_size,
            expected_sha256=self.expected_sha256,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


SETTINGS_KEYS = frozenset(f.name for f in fields(BridgeSettings))


# =============================================================================
# LOADING
# =============================================================================

def _read_settings_file(path: Path) -> Dict[str, Any]:
    try:
        content = path.read_text(encoding='utf-8')
    except FileNotFoundError:
        raise ConfigError(f"Settings file not found: {path}")
    except OSError as e:
        raise ConfigError(f"Cannot read settings file {path}: {e}")

    suffix = path.suffix.lower()
    try:
        if suffix in _YAML_SUFFIXES:
            data = yaml.safe_load(content)
        elif suffix in _JSON_SUFFIXES:
            data = json.loads(content)
        else:
            raise ConfigError(
                f"Unsupported settings format '{suffix or path.name}' "
                f"(use .json, .yaml or .yml)"
            )
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Malformed settings file {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping at the top level")
    return data


def _apply_file(settings: BridgeSettings, data: Dict[str, Any], source: Path) -> None:
    unknown = sorted(set(data) - SETTINGS_KEYS)
    if unknown:
        raise ConfigError(f"Unknown settings in {source}: {', '.join(unknown)}")

    for key, value in data.items():
        if key in ('candidates', 'allowed_prefixes') and isinstance(value, str):
            value = [value]
        if key == 'environment' and isinstance(value, str):
            value = value.strip().lower()
        setattr(settings, key, value)


def _apply_environment(settings: BridgeSettings) -> None:
    settings.environment = RuntimeConfig.get_environment(settings.environment)
    settings.execution_timeout = RuntimeConfig.get_execution_timeout(settings.execution_timeout)
    settings.permission_check_timeout = RuntimeConfig.get_permission_check_timeout(
        settings.permission_check_timeout
    )
    settings.consent_timeout = RuntimeConfig.get_consent_timeout(settings.consent_timeout)
    settings.expected_sha256 = RuntimeConfig.get_expected_sha256(settings.expected_sha256)

    extra_candidates = list(RuntimeConfig.get_extra_candidates())
    extra_prefixes = list(RuntimeConfig.get_extra_allowed_prefixes())
    if not (extra_candidates or extra_prefixes):
        return

    # SECURITY: the environment must never widen the production allowlist
    if settings.environment == Environments.PRODUCTION:
        logger.warning(
            "SECURITY: Ignoring EVENTKIT_BRIDGE_BINARY_CANDIDATES and "
            "EVENTKIT_BRIDGE_ALLOWED_PREFIXES in production"
        )
        return

    # Extra candidates are tried before configured ones
    if extra_candidates:
        base = settings.candidates or default_candidates(settings.resolved_project_root())
        settings.candidates = extra_candidates + [c for c in base if c not in extra_candidates]

    if extra_prefixes:
        base = settings.allowed_prefixes or default_allowed_prefixes(
            settings.resolved_project_root()
        )
        settings.allowed_prefixes = base + [p for p in extra_prefixes if p not in base]


def load_bridge_settings(path: Optional[Union[str, Path]] = None) -> BridgeSettings:
    """
    Load settings from defaults, an optional file and the environment.

    Args:
        path: Settings file; defaults to $EVENTKIT_BRIDGE_CONFIG when unset

    Raises:
        ConfigError: unreadable, malformed or invalid settings
    """
    settings = BridgeSettings()

    source = path if path is not None else os.environ.get(CONFIG_ENV_VAR)
    if source:
        source_path = Path(source).expanduser()
        _apply_file(settings, _read_settings_file(source_path), source_path)
        logger.info(f"Loaded bridge settings from {source_path}")

    _apply_environment(settings)
    settings.validate()

    logger.debug(
        f"Bridge settings: environment={settings.environment}, "
        f"execution_timeout={settings.execution_timeout}s"
    )
    return settings


__all__ = [
    'CONFIG_ENV_VAR',
    'ValidationProfile',
    'ENVIRONMENT_PROFILES',
    'BridgeSettings',
    'SETTINGS_KEYS',
    'find_project_root',
    'default_candidates',
    'default_allowed_prefixes',
    'load_bridge_settings',
]
