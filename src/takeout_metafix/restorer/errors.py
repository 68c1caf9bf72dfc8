"""Error classes for the metadata restorer."""

import subprocess

from takeout_metafix.common import MetafixError


class RestoreError(MetafixError):
    """Base error for restore operations."""
    pass


class SidecarParseError(RestoreError):
    """Sidecar file is unreadable, malformed, or not a per-media record."""
    pass


class CopyFailedError(RestoreError):
    """Media file could not be copied into the output tree."""
    pass


class ToolNotFoundError(RestoreError):
    """Required external tool is not available."""
    pass


def classify_error(exception: Exception) -> str:
    """
    Classify an exception into an error category.
    
    Args:
        exception: The exception to classify
        
    Returns:
        Error category string: 'parse', 'copy', 'tool_missing',
        'timeout', 'permission', 'io', or 'unknown'
    """
    if isinstance(exception, SidecarParseError):
        return 'parse'
    elif isinstance(exception, CopyFailedError):
        return 'copy'
    elif isinstance(exception, (ToolNotFoundError, FileNotFoundError)):
        return 'tool_missing'
    elif isinstance(exception, subprocess.TimeoutExpired):
        return 'timeout'
    elif isinstance(exception, PermissionError):
        return 'permission'
    elif isinstance(exception, OSError):
        return 'io'
    else:
        return 'unknown'
