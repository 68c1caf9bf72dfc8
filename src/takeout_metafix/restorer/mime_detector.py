"""Content-signature type detection using filetype library (pure Python, cross-platform)."""

import logging
from pathlib import Path
from typing import Optional

import filetype

logger = logging.getLogger(__name__)

# Different spellings of the same container
EXTENSION_ALIASES = {
    'jpeg': 'jpg',
    'jpe': 'jpg',
    'jfif': 'jpg',
    'tif': 'tiff',
    'heif': 'heic',
    'mpeg': 'mpg',
}


# Camera RAW formats built on a TIFF container; filetype reports them as tiff
TIFF_BASED_RAW = frozenset({'dng', 'nef', 'arw', 'cr2', 'orf', 'raf'})


def canonical_extension(extension: str) -> str:
    """Lower-case, strip the dot, and fold aliases (``.JPEG`` -> ``jpg``)."""
    ext = extension.lower().lstrip('.')
    return EXTENSION_ALIASES.get(ext, ext)


def extensions_agree(current: str, detected: str) -> bool:
    """
    Check whether a file's extension matches its detected type.
    
    A ``tiff`` detection agrees with any TIFF-based RAW extension.
    """
    current = canonical_extension(current)
    detected = canonical_extension(detected)
    if current == detected:
        return True
    return detected == 'tiff' and current in TIFF_BASED_RAW


def detect_type(file_path: Path) -> Optional[str]:
    """
    Detect the real type of a file by reading its magic bytes.
    
    Args:
        file_path: Path to the file
        
    Returns:
        Canonical extension without dot (e.g. 'jpg', 'mp4'), or None when the
        signature is unknown or the file cannot be read
    """
    try:
        kind = filetype.guess(str(file_path))
    except OSError as e:
        logger.debug(f"Type detection failed: {{'path': {str(file_path)!r}, 'error': {str(e)!r}}}")
        return None
    if kind is None:
        return None
    return canonical_extension(kind.extension)
