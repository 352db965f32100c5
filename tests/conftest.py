"""
Pytest configuration and shared fixtures for EventKit Bridge tests.

This module provides temporary directories, fake helper executables and
recording stand-ins for the executor and consent trigger.
"""

import json
import os
import shutil
import stat
import tempfile
import threading
from pathlib import Path
from typing import Callable, Generator, List, Optional
from unittest.mock import patch

import pytest

# Add the parent directory to the path for imports
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from eventkit_bridge.config import BridgeSettings
from eventkit_bridge.constants import Environments
from eventkit_bridge.exceptions import TriggerFailedError
from eventkit_bridge.execution import (
    BinaryConfig,
    BinaryResolver,
    ExecutionOutcome,
    MockProcessExecutor,
)
from eventkit_bridge.models import PermissionDomain
from eventkit_bridge.utils.error_handling import get_repeat_suppressor


# ===========================================================================
# Environment Isolation
# ===========================================================================

@pytest.fixture(autouse=True)
def clean_bridge_env() -> Generator[None, None, None]:
    """Strip EVENTKIT_BRIDGE_* variables so host settings never leak into tests."""
    cleaned = {k: v for k, v in os.environ.items() if not k.startswith("EVENTKIT_BRIDGE_")}
    with patch.dict(os.environ, cleaned, clear=True):
        yield


@pytest.fixture(autouse=True)
def reset_error_repeats() -> Generator[None, None, None]:
    """Start every test with no remembered failures."""
    get_repeat_suppressor().clear()
    yield
    get_repeat_suppressor().clear()


# ===========================================================================
# Temporary Directory Fixtures
# ===========================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    tmpdir = tempfile.mkdtemp(prefix="eventkit_bridge_test_")
    yield Path(os.path.realpath(tmpdir))
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def bin_dir(temp_dir: Path) -> Path:
    """Provide an allowlisted bin directory inside the temp dir."""
    path = temp_dir / "bin"
    path.mkdir(parents=True, exist_ok=True)
    return path


# ===========================================================================
# Fake Helper Executables
# ===========================================================================

def write_script(path: Path, body: str, executable: bool = True) -> str:
    """Write a Python script with a shebang for the running interpreter."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!{sys.executable}\nimport sys\n{body}\n", encoding="utf-8")
    mode = path.stat().st_mode
    if executable:
        path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    else:
        path.chmod(mode & ~(stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH))
    return str(path)


@pytest.fixture
def make_helper(bin_dir: Path) -> Callable[..., str]:
    """
    Factory for fake helper binaries.

    Usage:
        path = make_helper('print(\'{"status": "success", "result": 1}\')')
    """
    def _make(body: str, name: str = "EventKitCLI", directory: Optional[Path] = None,
              executable: bool = True) -> str:
        return write_script((directory or bin_dir) / name, body, executable=executable)
    return _make


def success_json(result) -> str:
    return json.dumps({"status": "success", "result": result})


def error_json(message: str) -> str:
    return json.dumps({"status": "error", "message": message})


# ===========================================================================
# Resolver and Settings Fixtures
# ===========================================================================

@pytest.fixture
def binary_config(temp_dir: Path, bin_dir: Path) -> BinaryConfig:
    """Resolver config with a single candidate under the temp bin dir."""
    return BinaryConfig(
        candidates=(str(bin_dir / "EventKitCLI"),),
        allowed_prefixes=(str(bin_dir),),
    )


@pytest.fixture
def resolver(binary_config: BinaryConfig) -> BinaryResolver:
    return BinaryResolver(binary_config)


@pytest.fixture
def test_settings(temp_dir: Path, bin_dir: Path) -> BridgeSettings:
    """Development settings rooted at the temp dir."""
    return BridgeSettings(
        environment=Environments.DEVELOPMENT,
        candidates=[str(bin_dir / "EventKitCLI")],
        allowed_prefixes=[str(bin_dir)],
        execution_timeout=5.0,
        permission_check_timeout=5.0,
        consent_timeout=5.0,
        project_root=str(temp_dir),
    )


# ===========================================================================
# Recording Fakes
# ===========================================================================

class StaticResolver:
    """Resolver stand-in that returns a fixed path and counts calls."""

    def __init__(self, path: str = "/fake/bin/EventKitCLI", error: Optional[Exception] = None):
        self.path = path
        self.error = error
        self.calls = 0

    def resolve(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.path


class RecordingTrigger:
    """Consent trigger stand-in recording each requested domain."""

    def __init__(self, error: Optional[str] = None, delay: float = 0.0):
        self.error = error
        self.delay = delay
        self.domains: List[PermissionDomain] = []
        self._lock = threading.Lock()

    @property
    def call_count(self) -> int:
        return len(self.domains)

    def trigger(self, domain: PermissionDomain) -> None:
        with self._lock:
            self.domains.append(domain)
        if self.delay:
            threading.Event().wait(self.delay)
        if self.error is not None:
            raise TriggerFailedError(domain, self.error)


@pytest.fixture
def mock_executor() -> MockProcessExecutor:
    return MockProcessExecutor()


@pytest.fixture
def static_resolver() -> StaticResolver:
    return StaticResolver()


@pytest.fixture
def recording_trigger() -> RecordingTrigger:
    return RecordingTrigger()


def completed(stdout: str = "", stderr: str = "", exit_code: int = 0) -> ExecutionOutcome:
    """Shorthand for a completed outcome."""
    return ExecutionOutcome.completed(exit_code, stdout, stderr)


# ===========================================================================
# Pytest Configuration
# ===========================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests (spawn real processes)")
    config.addinivalue_line("markers", "security: Security-specific tests")
    config.addinivalue_line("markers", "slow: Slow tests (>1s)")
