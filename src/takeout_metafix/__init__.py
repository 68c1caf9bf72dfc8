"""Restore Google Takeout sidecar metadata onto exported media files."""

__version__ = "0.1.0"
