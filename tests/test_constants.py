"""
Tests for the Constants module.

Tests centralized configuration values and environment overrides.
"""

import os
import sys
from unittest.mock import patch

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from eventkit_bridge.constants import (
    BinaryPaths,
    CalendarActions,
    Environments,
    Limits,
    PermissionConstants,
    RuntimeConfig,
    Timeouts,
    _env_override,
    _env_override_list,
)


# ===========================================================================
# Timeout Constants Tests
# ===========================================================================

class TestTimeouts:
    """Tests for Timeouts dataclass."""

    def test_timeouts_positive(self):
        """All timeouts should be positive."""
        assert Timeouts.HELPER_EXECUTION > 0
        assert Timeouts.PERMISSION_CHECK > 0
        assert Timeouts.CONSENT_PROMPT > 0
        assert Timeouts.KILL_GRACE > 0

    def test_permission_check_shorter_than_execution(self):
        """The status probe uses a shorter timeout than helper calls."""
        assert Timeouts.PERMISSION_CHECK < Timeouts.HELPER_EXECUTION

    def test_defaults(self):
        assert Timeouts.HELPER_EXECUTION == 30.0
        assert Timeouts.PERMISSION_CHECK == 5.0
        assert Timeouts.CONSENT_PROMPT == 30.0

    def test_bounds_ordered(self):
        assert Timeouts.MINIMUM < Timeouts.PERMISSION_CHECK < Timeouts.MAXIMUM


# ===========================================================================
# Path and Marker Constants Tests
# ===========================================================================

class TestBinaryPaths:
    """Tests for helper location constants."""

    def test_binary_name(self):
        assert BinaryPaths.BINARY_NAME == "EventKitCLI"

    def test_mock_path_ends_with_binary_name(self):
        assert os.path.basename(BinaryPaths.MOCK_PATH) == BinaryPaths.BINARY_NAME

    def test_system_prefixes_absolute(self):
        assert all(os.path.isabs(p) for p in BinaryPaths.SYSTEM_PREFIXES)


class TestPermissionConstants:
    """Tests for permission protocol constants."""

    def test_markers_lowercase(self):
        """Markers are compared against lowercased text."""
        assert all(m == m.lower() for m in PermissionConstants.DENIAL_MARKERS)

    def test_success_marker(self):
        assert PermissionConstants.SUCCESS_MARKER == "EventKit permissions granted"

    def test_calendar_actions(self):
        assert "read-events" in CalendarActions.ACTIONS
        assert "read" not in CalendarActions.ACTIONS


class TestLimits:
    """Tests for size limits."""

    def test_relaxed_cap_larger(self):
        assert Limits.MAX_BINARY_SIZE_RELAXED > Limits.MAX_BINARY_SIZE_PRODUCTION

    def test_production_cap(self):
        assert Limits.MAX_BINARY_SIZE_PRODUCTION == 50 * 1024 * 1024


# ===========================================================================
# Environment Override Tests
# ===========================================================================

class TestEnvOverride:
    """Tests for _env_override."""

    def test_unset_returns_default(self):
        assert _env_override("NOT_SET_ANYWHERE", 3.0, float) == 3.0

    def test_override_applied(self):
        with patch.dict(os.environ, {"EVENTKIT_BRIDGE_SAMPLE": "7"}):
            assert _env_override("SAMPLE", 3, int) == 7

    def test_below_minimum_uses_default(self):
        with patch.dict(os.environ, {"EVENTKIT_BRIDGE_SAMPLE": "0"}):
            assert _env_override("SAMPLE", 3.0, float, min_value=1.0) == 3.0

    def test_above_maximum_uses_default(self):
        with patch.dict(os.environ, {"EVENTKIT_BRIDGE_SAMPLE": "9999"}):
            assert _env_override("SAMPLE", 3.0, float, max_value=600.0) == 3.0

    def test_unparseable_uses_default(self):
        with patch.dict(os.environ, {"EVENTKIT_BRIDGE_SAMPLE": "soon"}):
            assert _env_override("SAMPLE", 3.0, float) == 3.0

    def test_validator_rejects(self):
        with patch.dict(os.environ, {"EVENTKIT_BRIDGE_SAMPLE": "x"}):
            assert _env_override("SAMPLE", "y", validator=lambda v: v == "z") == "y"

    def test_list_override(self):
        value = os.pathsep.join(["/a", " /b ", ""])
        with patch.dict(os.environ, {"EVENTKIT_BRIDGE_SAMPLE_LIST": value}):
            assert _env_override_list("SAMPLE_LIST", ()) == ("/a", "/b")

    def test_list_validator_rejects_all(self):
        with patch.dict(os.environ, {"EVENTKIT_BRIDGE_SAMPLE_LIST": "relative"}):
            assert _env_override_list("SAMPLE_LIST", ("/d",), validator=os.path.isabs) == ("/d",)


class TestRuntimeConfig:
    """Tests for RuntimeConfig getters."""

    def test_default_environment(self):
        assert RuntimeConfig.get_environment() == Environments.PRODUCTION

    def test_environment_default_from_lower_layer(self):
        assert RuntimeConfig.get_environment(Environments.DEVELOPMENT) == Environments.DEVELOPMENT

    @pytest.mark.parametrize("value", ["test", "TEST", " test "])
    def test_test_mode(self, value):
        with patch.dict(os.environ, {"EVENTKIT_BRIDGE_ENV": value}):
            assert RuntimeConfig.get_environment() == Environments.TEST

    def test_execution_timeout_override(self):
        with patch.dict(os.environ, {"EVENTKIT_BRIDGE_EXECUTION_TIMEOUT": "12.5"}):
            assert RuntimeConfig.get_execution_timeout() == 12.5

    def test_rejected_timeout_keeps_lower_layer(self):
        with patch.dict(os.environ, {"EVENTKIT_BRIDGE_EXECUTION_TIMEOUT": "0"}):
            assert RuntimeConfig.get_execution_timeout(12.0) == 12.0

    def test_expected_sha256(self):
        digest = "a" * 64
        with patch.dict(os.environ, {"EVENTKIT_BRIDGE_EXPECTED_SHA256": digest}):
            assert RuntimeConfig.get_expected_sha256() == digest
        assert RuntimeConfig.get_expected_sha256("b" * 64) == "b" * 64

    def test_consent_timeout_default(self):
        assert RuntimeConfig.get_consent_timeout() == Timeouts.CONSENT_PROMPT
        assert RuntimeConfig.get_permission_check_timeout() == Timeouts.PERMISSION_CHECK

    def test_extra_candidates(self):
        with patch.dict(os.environ, {"EVENTKIT_BRIDGE_BINARY_CANDIDATES": "/x/EventKitCLI"}):
            assert RuntimeConfig.get_extra_candidates() == ("/x/EventKitCLI",)
        assert RuntimeConfig.get_extra_allowed_prefixes() == ()

    def test_relative_extra_prefix_rejected(self):
        with patch.dict(os.environ, {"EVENTKIT_BRIDGE_ALLOWED_PREFIXES": "bin"}):
            assert RuntimeConfig.get_extra_allowed_prefixes() == ()
