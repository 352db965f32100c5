"""
Logging Configuration for EventKit Bridge.

Each helper call is logged as a pipeline (start, one line per state, end)
by the feature-aware BridgeLogger. Records go to stderr, so stdout stays
free for helper results printed by the CLI. Log lines carry the action name
and argument count of a call, never the argument values.

Usage:
    from eventkit_bridge.logging_config import setup_logging, get_logger

    setup_logging(verbose=True)

    logger = get_logger(__name__)
    logger.pipeline_start("helper_call", action="read", arg_count=2)
"""

import os
import sys
import json
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Set


VERBOSE = 15
NOTICE = 25

logging.addLevelName(VERBOSE, 'VERBOSE')
logging.addLevelName(NOTICE, 'NOTICE')


# =============================================================================
# FEATURE AREAS
# =============================================================================

class FeatureArea(Enum):
    """Parts of the bridge whose logging can be turned down independently."""
    CORE = "core"                   # Coordinator and composition root
    EXECUTION = "execution"         # Binary resolution and process execution
    PERMISSIONS = "permissions"     # Classification, consent, status checks
    CONFIG = "config"               # Settings loading
    CLI = "cli"                     # Operator CLI


PACKAGE_LOGGER = 'eventkit_bridge'

# Subpackage logger for every feature except CORE
_FEATURE_LOGGERS = {
    FeatureArea.EXECUTION: f'{PACKAGE_LOGGER}.execution',
    FeatureArea.PERMISSIONS: f'{PACKAGE_LOGGER}.permissions',
    FeatureArea.CONFIG: f'{PACKAGE_LOGGER}.config',
    FeatureArea.CLI: f'{PACKAGE_LOGGER}.cli',
}


def feature_for(logger_name: str) -> FeatureArea:
    """Map a logger name to the feature area owning it."""
    for feature, prefix in _FEATURE_LOGGERS.items():
        if logger_name == prefix or logger_name.startswith(prefix + '.'):
            return feature
    return FeatureArea.CORE


# =============================================================================
# FORMATTER
# =============================================================================

class BridgeFormatter(logging.Formatter):
    """Text (optionally colored) or JSON lines with the feature and call data."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'VERBOSE': '\033[94m',    # Light blue
        'INFO': '\033[32m',       # Green
        'NOTICE': '\033[33m',     # Yellow
        'WARNING': '\033[33;1m',  # Bold yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[31;1m', # Bold red
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True, json_format: bool = False, stream=None):
        super().__init__()
        stream = stream if stream is not None else sys.stderr
        self.use_colors = use_colors and hasattr(stream, 'isatty') and stream.isatty()
        self.json_format = json_format

    def format(self, record: logging.LogRecord) -> str:
        feature = feature_for(record.name).value
        extra = getattr(record, 'extra_data', None)

        if self.json_format:
            data = {
                'timestamp': datetime.now().isoformat(),
                'level': record.levelname,
                'logger': record.name,
                'feature': feature,
                'message': record.getMessage(),
            }
            if extra:
                data['extra'] = extra
            if record.exc_info:
                data['exception'] = self.formatException(record.exc_info)
            return json.dumps(data, default=str)

        level = f"{record.levelname:8}"
        if self.use_colors:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"

        text = f"{datetime.now():%H:%M:%S} {level} {'[' + feature + ']':14} {record.getMessage()}"
        if extra:
            text += " | " + ", ".join(f"{k}={v}" for k, v in extra.items())
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


# =============================================================================
# LOGGER CLASS
# =============================================================================

class BridgeLogger(logging.Logger):
    """Logger with VERBOSE/NOTICE levels and helper-call pipeline records."""

    def __init__(self, name: str, level: int = logging.NOTSET):
        super().__init__(name, level)
        self.feature = feature_for(name)

    def verbose(self, msg: str, *args, **kwargs):
        if self.isEnabledFor(VERBOSE):
            self._log(VERBOSE, msg, args, **kwargs)

    def notice(self, msg: str, *args, **kwargs):
        if self.isEnabledFor(NOTICE):
            self._log(NOTICE, msg, args, **kwargs)

    def pipeline_start(self, pipeline_name: str, **data):
        self.info(f"Pipeline START: {pipeline_name}", extra={'extra_data': data})

    def pipeline_step(self, step_name: str, **data):
        self.verbose(f"  Step: {step_name}", extra={'extra_data': data})

    def pipeline_end(self, pipeline_name: str, success: bool, **data):
        """Failures are logged at WARNING so they survive a turned-down feature."""
        status = "SUCCESS" if success else "FAILED"
        level = logging.INFO if success else logging.WARNING
        if self.isEnabledFor(level):
            self._log(level, f"Pipeline END: {pipeline_name} - {status}",
                      (), extra={'extra_data': data})


logging.setLoggerClass(BridgeLogger)


def get_logger(name: str) -> BridgeLogger:
    """Get a BridgeLogger, even if a plain logger was registered first."""
    logger = logging.getLogger(name)
    if not isinstance(logger, BridgeLogger):
        logging.setLoggerClass(BridgeLogger)
        logger = logging.getLogger(name)
    return logger


# =============================================================================
# SETUP
# =============================================================================

def setup_logging(
    verbose: bool = False,
    log_file: Optional[str] = None,
    console: bool = True,
    json_format: bool = False,
    features: Optional[Set[FeatureArea]] = None,
) -> None:
    """
    Replace the root handlers with bridge handlers.

    Args:
        verbose: Log pipeline steps (VERBOSE level)
        log_file: Also write records to this file
        console: Write records to stderr
        json_format: One JSON object per line
        features: Feature areas logged at the base level; others log WARNING+
    """
    base_level = VERBOSE if verbose else logging.INFO
    enabled = set(features) if features is not None else set(FeatureArea)

    root = logging.getLogger()
    root.setLevel(base_level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(BridgeFormatter(json_format=json_format, stream=sys.stderr))
        root.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(BridgeFormatter(use_colors=False, json_format=json_format))
        root.addHandler(file_handler)

    for feature, logger_name in _FEATURE_LOGGERS.items():
        level = base_level if feature in enabled else logging.WARNING
        logging.getLogger(logger_name).setLevel(level)


def _env_flag(name: str) -> bool:
    return os.environ.get(f'EVENTKIT_BRIDGE_{name}', '').lower() in ('1', 'true', 'yes')


def configure_from_environment(verbose: bool = False, json_format: bool = False) -> None:
    """
    Configure logging from EVENTKIT_BRIDGE_* variables, OR-ed with explicit flags.

    EVENTKIT_BRIDGE_LOG_DISABLE_FEATURES takes a comma-separated list of
    feature names; unknown names are ignored.
    """
    disabled = {
        name.strip().lower()
        for name in os.environ.get('EVENTKIT_BRIDGE_LOG_DISABLE_FEATURES', '').split(',')
    }
    setup_logging(
        verbose=verbose or _env_flag('VERBOSE'),
        log_file=os.environ.get('EVENTKIT_BRIDGE_LOG_FILE'),
        console=not _env_flag('LOG_NO_CONSOLE'),
        json_format=json_format or _env_flag('LOG_JSON'),
        features={f for f in FeatureArea if f.value not in disabled},
    )


__all__ = [
    'VERBOSE',
    'NOTICE',
    'FeatureArea',
    'feature_for',
    'BridgeFormatter',
    'BridgeLogger',
    'get_logger',
    'setup_logging',
    'configure_from_environment',
]
