"""
Binary Resolver - Locates and validates the native helper binary.

SECURITY: The helper runs with the user's calendar and reminder privileges,
so the bridge refuses to execute anything that is not provably the helper
shipped with the project:

1. Candidates are checked in order; the first one passing every check wins
2. Path traversal components and relative paths are rejected
3. The symlink-resolved path must sit under an allowlisted directory, so a
   look-alike binary in a compromised working directory is never picked up
4. The file must be a regular, executable file below the size cap
5. When an expected SHA-256 is configured, the digest must match

A successful resolution is cached on the resolver for the life of the
process. Failures are not cached. In test mode the resolver returns a fixed
sentinel path without touching the filesystem.
"""

import fnmatch
import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from ..constants import BinaryPaths, Limits
from ..exceptions import BinaryNotExecutableError, BinaryNotFoundError
from ..utils.error_handling import log_security_error

logger = logging.getLogger(__name__)

_GLOB_CHARS = frozenset('*?[')


class RejectionReason:
    """Reasons a candidate path was rejected."""
    PATH_TRAVERSAL = "path traversal component"
    NOT_ABSOLUTE = "relative path not permitted"
    WRONG_NAME = "unexpected binary filename"
    MISSING = "does not exist"
    OUTSIDE_ALLOWLIST = "outside allowlisted directories"
    NOT_REGULAR_FILE = "not a regular file"
    NOT_EXECUTABLE = "not executable"
    TOO_LARGE = "exceeds maximum binary size"
    HASH_MISMATCH = "SHA-256 digest mismatch"
    UNREADABLE = "cannot be inspected"


@dataclass(frozen=True)
class BinaryConfig:
    """
    Immutable description of where the helper may be found.

    Attributes:
        candidates: Ordered candidate paths
        allowed_prefixes: Directory prefixes (shell wildcards allowed per component)
        binary_name: Expected basename of the helper
        max_file_size: Size cap in bytes, or None for no cap
        expected_sha256: Hex digest the helper must match, or None
    """
    candidates: Tuple[str, ...]
    allowed_prefixes: Tuple[str, ...]
    binary_name: str = BinaryPaths.BINARY_NAME
    max_file_size: Optional[int] = Limits.MAX_BINARY_SIZE_PRODUCTION
    expected_sha256: Optional[str] = None

    def __post_init__(self):
        # Accept lists from callers but keep the value hashable and immutable
        object.__setattr__(self, 'candidates', tuple(self.candidates))
        object.__setattr__(self, 'allowed_prefixes', tuple(self.allowed_prefixes))
        if self.expected_sha256:
            object.__setattr__(self, 'expected_sha256', self.expected_sha256.strip().lower())


def _split_components(path: str) -> Tuple[str, ...]:
    return Path(path).parts


def _normalize_prefix(prefix: str) -> str:
    expanded = os.path.expanduser(prefix)
    if _GLOB_CHARS.intersection(expanded):
        return os.path.normpath(expanded)
    return os.path.realpath(expanded)


def path_matches_allowlist(path: str, allowed_prefixes: Sequence[str]) -> bool:
    """
    Check whether a resolved file path sits under an allowlisted prefix.

    Matching is per path component, so '/opt/app' admits '/opt/app/bin/x'
    but not '/opt/appx/x'. Components may use fnmatch wildcards.

    SECURITY: Relative prefixes are skipped. Resolving them against the
    working directory would let that directory into the allowlist.
    """
    directory_parts = _split_components(os.path.dirname(path))
    for prefix in allowed_prefixes:
        if not prefix:
            continue
        if not os.path.isabs(os.path.expanduser(prefix)):
            log_security_error(
                ValueError(f"Relative allowlist prefix ignored: {prefix}"),
                "match_helper_allowlist",
                prefix=prefix,
            )
            continue
        prefix_parts = _split_components(_normalize_prefix(prefix))
        if len(prefix_parts) > len(directory_parts):
            continue
        if all(
            fnmatch.fnmatchcase(actual, expected)
            for actual, expected in zip(directory_parts, prefix_parts)
        ):
            return True
    return False


def sha256_file(path: str) -> str:
    """Compute the SHA-256 hex digest of a file."""
    digest = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(Limits.HASH_CHUNK), b''):
            digest.update(chunk)
    return digest.hexdigest()


class BinaryResolver:
    """
    Resolves the helper binary once and remembers the answer.

    Constructed once at startup and passed to every component that needs
    the helper path. Concurrent first calls may both probe the filesystem;
    they compute the same value, so no lock is taken.
    """

    def __init__(
        self,
        config: BinaryConfig,
        test_mode: bool = False,
        mock_path: str = BinaryPaths.MOCK_PATH,
    ):
        self.config = config
        self.test_mode = test_mode
        self.mock_path = mock_path
        self._cached_path: Optional[str] = None

    @property
    def cached_path(self) -> Optional[str]:
        return self._cached_path

    def invalidate(self) -> None:
        """Forget the cached path so the next resolve() probes again."""
        if self._cached_path is not None:
            logger.debug(f"Invalidating cached helper path {self._cached_path}")
        self._cached_path = None

    def resolve(self) -> str:
        """
        Return the validated helper path.

        Raises:
            BinaryNotExecutableError: allowlisted candidates exist but lack +x
            BinaryNotFoundError: no candidate passed validation
        """
        if self.test_mode:
            return self.mock_path

        cached = self._cached_path
        if cached is not None:
            return cached

        attempted: List[Tuple[str, str]] = []
        for candidate in self.config.candidates:
            reason = self._check_candidate(candidate)
            if reason is None:
                resolved = os.path.realpath(candidate)
                logger.debug(f"Helper binary found at: {resolved}")
                self._cached_path = resolved
                return resolved
            logger.debug(f"Rejected helper candidate {candidate}: {reason}")
            attempted.append((candidate, reason))

        rejected = [reason for _, reason in attempted]
        if rejected and RejectionReason.NOT_EXECUTABLE in rejected and all(
            r in (RejectionReason.NOT_EXECUTABLE, RejectionReason.MISSING,
                  RejectionReason.WRONG_NAME)
            for r in rejected
        ):
            error_cls = BinaryNotExecutableError
            summary = f"{self.config.binary_name} found but not executable"
        else:
            error_cls = BinaryNotFoundError
            summary = f"{self.config.binary_name} not found in any allowed location"

        error = error_cls(summary, attempted=attempted)
        logger.error(f"{summary}. Tried:\n{error.describe_attempts()}")
        raise error

    def _check_candidate(self, candidate: str) -> Optional[str]:
        """Return None when the candidate is acceptable, else a rejection reason."""
        config = self.config

        if '..' in _split_components(candidate):
            return RejectionReason.PATH_TRAVERSAL

        if not os.path.isabs(candidate):
            return RejectionReason.NOT_ABSOLUTE

        if os.path.basename(candidate) != config.binary_name:
            return RejectionReason.WRONG_NAME

        if not os.path.exists(candidate):
            return RejectionReason.MISSING

        resolved = os.path.realpath(candidate)
        if not path_matches_allowlist(resolved, config.allowed_prefixes):
            log_security_error(
                PermissionError(f"Helper candidate outside allowlist: {resolved}"),
                "resolve_helper_binary",
                candidate=candidate,
                allowed_prefixes=list(config.allowed_prefixes),
            )
            return RejectionReason.OUTSIDE_ALLOWLIST

        if not os.path.isfile(resolved):
            return RejectionReason.NOT_REGULAR_FILE

        if not os.access(resolved, os.X_OK):
            return RejectionReason.NOT_EXECUTABLE

        try:
            size = os.path.getsize(resolved)
            if config.max_file_size is not None and size > config.max_file_size:
                return RejectionReason.TOO_LARGE

            if config.expected_sha256:
                actual = sha256_file(resolved)
                if actual != config.expected_sha256:
                    log_security_error(
                        ValueError("Helper binary digest mismatch"),
                        "verify_helper_integrity",
                        path=resolved,
                        expected=config.expected_sha256,
                        actual=actual,
                    )
                    return RejectionReason.HASH_MISMATCH
        except OSError as e:
            logger.warning(f"Cannot inspect helper candidate {resolved}: {e}")
            return RejectionReason.UNREADABLE

        return None


__all__ = [
    'BinaryConfig',
    'BinaryResolver',
    'RejectionReason',
    'path_matches_allowlist',
    'sha256_file',
]
