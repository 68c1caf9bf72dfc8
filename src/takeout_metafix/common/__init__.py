"""Common utilities shared by takeout-metafix packages."""

from .config import ConfigLoader
from .logging import configure_logging, setup_logging
from .logging_config import LoggingConfig
from .errors import MetafixError, ConfigurationError
from .path_utils import normalize_path, normalize_key

__all__ = [
    'ConfigLoader',
    'LoggingConfig',
    'setup_logging',
    'configure_logging',
    'MetafixError',
    'ConfigurationError',
    'normalize_path',
    'normalize_key',
]
