"""Base error definitions for takeout_metafix packages."""

from typing import Any, Dict


class MetafixError(Exception):
    """Base exception for all takeout_metafix errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context


class ConfigurationError(MetafixError):
    """Configuration could not be loaded or is invalid."""
    pass
