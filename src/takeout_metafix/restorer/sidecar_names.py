"""Sidecar filename parsing.

Takeout names sidecars ``<media name>.supplemental-metadata.json`` but the
whole name is cut to a fixed length, so the tail can be truncated anywhere:

    IMG_1234.jpg.supplemental-metadata.json   -> IMG_1234.jpg
    IMG_1234.jpg.supplemen.json               -> IMG_1234.jpg
    IMG_1234.jpg.s.json                       -> IMG_1234.jpg
    IMG_1234.jpg.supplemental-metadata(1).json -> IMG_1234.jpg, duplicate 1
    photo.supp(1).json                        -> photo, duplicate 1
    IMG_1234..json                            -> IMG_1234 (degenerate)
    IMG_1234.jpg.json                         -> IMG_1234.jpg (legacy, extension only)
    a_very_long_file_name_that_got_cut.json   -> a_very_long_file_name_that_got_cut
"""

import os
import re
from dataclasses import dataclass
from typing import Optional, Tuple

SUPPLEMENTAL_TAIL = "supplemental-metadata"

_TRAILING_INDEX_RE = re.compile(r'\((\d+)\)\s*$')
_STEM_INDEX_RE = re.compile(r'\s?\((\d+)\)$')
_TAIL_RE = re.compile(r'\.([A-Za-z-]+)$')


@dataclass(frozen=True)
class DerivedName:
    """Media filename inferred from a sidecar filename."""

    name: str
    duplicate_index: Optional[int] = None
    supplemental: bool = False  # a (possibly truncated) supplemental tail was removed
    degenerate: bool = False  # trailing dots were collapsed

    @property
    def extension_only(self) -> bool:
        """Only the sidecar extension was stripped (legacy or fully truncated form)."""
        return not self.supplemental


def derive_media_name(sidecar_name: str, sidecar_extension: str = ".json") -> DerivedName:
    """
    Infer the media filename a sidecar was named after.
    
    Args:
        sidecar_name: Sidecar filename (no directory)
        sidecar_extension: Sidecar extension including the dot
        
    Returns:
        DerivedName; ``name`` may be empty for pathological inputs
    """
    core = sidecar_name
    if core.lower().endswith(sidecar_extension.lower()):
        core = core[:-len(sidecar_extension)]
    core = core.rstrip()
    
    duplicate_index = None
    m = _TRAILING_INDEX_RE.search(core)
    if m:
        duplicate_index = int(m.group(1))
        core = core[:m.start()]
    
    supplemental = False
    m = _TAIL_RE.search(core)
    if m and SUPPLEMENTAL_TAIL.startswith(m.group(1).lower()):
        core = core[:m.start()]
        supplemental = True
    
    degenerate = False
    if core.endswith('.'):
        core = core.rstrip('.')
        degenerate = True
    
    return DerivedName(
        name=core,
        duplicate_index=duplicate_index,
        supplemental=supplemental,
        degenerate=degenerate,
    )


def split_duplicate_index(name: str) -> Tuple[str, Optional[int]]:
    """
    Split a ``(N)`` marker off the end of a filename's stem.
    
    Examples:
        >>> split_duplicate_index("IMG_1234(2).jpg")
        ('IMG_1234.jpg', 2)
        >>> split_duplicate_index("photo (1)")
        ('photo', 1)
        >>> split_duplicate_index("IMG_1234.jpg")
        ('IMG_1234.jpg', None)
    """
    stem, ext = os.path.splitext(name)
    m = _STEM_INDEX_RE.search(stem)
    if not m or m.start() == 0:
        return name, None
    return stem[:m.start()] + ext, int(m.group(1))


def strip_duplicate_index(name: str) -> str:
    return split_duplicate_index(name)[0]


def with_duplicate_index(name: str, index: int) -> str:
    """``sunset.jpg`` + 1 -> ``sunset(1).jpg``."""
    stem, ext = os.path.splitext(name)
    return f"{stem}({index}){ext}"
