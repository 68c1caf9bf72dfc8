"""Path and name normalization shared across packages."""

import unicodedata
from pathlib import Path


def normalize_path(path: Path | str) -> str:
    """
    Normalize a path for consistent storage and comparison.
    
    Applies:
    - Unicode NFC normalization (canonical composition)
    - Forward slash conversion for cross-platform consistency
    
    Args:
        path: Path object or string to normalize
        
    Returns:
        Normalized path string with forward slashes and NFC Unicode normalization
        
    Examples:
        >>> normalize_path(Path("café/résumé.txt"))
        'café/résumé.txt'
        >>> normalize_path(r"C:\\Users\\test\\photos")
        'C:/Users/test/photos'
    """
    normalized = unicodedata.normalize('NFC', str(path))
    return normalized.replace('\\', '/')


def normalize_key(value: Path | str) -> str:
    """
    Build a case- and composition-insensitive lookup key.
    
    Filenames exported on macOS are often NFD while the titles stored in
    sidecars are NFC, so both sides are reduced to lower-cased NFC.
    
    Examples:
        >>> normalize_key("Cafe\\u0301.JPG") == normalize_key("Café.jpg")
        True
    """
    return normalize_path(value).lower()
