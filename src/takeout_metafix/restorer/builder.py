"""Work item construction and output-path allocation.

Runs single-threaded after resolution and before any parallel execution,
so every destination path is fixed before the first exiftool process starts.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Optional, Set, Tuple
from zoneinfo import ZoneInfo

from takeout_metafix.common import normalize_key

from .exiftool import build_tag_args, is_video_file
from .mime_detector import detect_type, extensions_agree
from .models import GeoPoint, Matched, RestoreMetadata, SidecarRecord, WorkItem
from .sidecar_names import with_duplicate_index

logger = logging.getLogger(__name__)

UNKNOWN_DATE_BUCKET = Path("unknown") / "00"


def select_geo(record: SidecarRecord) -> Optional[GeoPoint]:
    """Primary geolocation unless it is the 0/0 placeholder, then the fallback."""
    for geo in (record.geo_primary, record.geo_fallback):
        if geo is not None and not geo.is_placeholder:
            return geo
    return None


def extract_metadata(record: SidecarRecord) -> RestoreMetadata:
    return RestoreMetadata(
        captured_at=record.captured_at,
        created_at=record.created_at,
        description=record.description,
        title=record.title,
        geo=select_geo(record),
    )


class PathAllocator:
    """Hands out destination paths that are unique for the whole run.
    
    A name is free only if it exists neither on disk nor in the set of paths
    already assigned during this run. Assigned paths are kept lower-cased so
    case-insensitive filesystems cannot collide either. Entries are never
    removed.
    """

    def __init__(self) -> None:
        self._assigned: Set[str] = set()
        self._lock = threading.Lock()

    def __contains__(self, path: Path) -> bool:
        return normalize_key(path) in self._assigned

    def __len__(self) -> int:
        return len(self._assigned)

    def _is_taken(self, path: Path) -> bool:
        return normalize_key(path) in self._assigned or path.exists()

    def allocate(self, directory: Path, name: str) -> Path:
        """Return ``directory/name`` or the first free ``name(N)`` and register it."""
        with self._lock:
            candidate = directory / name
            counter = 0
            while self._is_taken(candidate):
                counter += 1
                candidate = directory / with_duplicate_index(name, counter)
            self._assigned.add(normalize_key(candidate))
            return candidate


class WorkItemBuilder:
    """Turns (sidecar record, match) pairs into immutable work items."""

    def __init__(
        self,
        timezone_name: str = "UTC",
        output_dir: Optional[Path] = None,
        allocator: Optional[PathAllocator] = None,
        type_detector: Callable[[Path], Optional[str]] = detect_type,
    ) -> None:
        self.tz = ZoneInfo(timezone_name)
        self.output_dir = output_dir
        self.allocator = allocator or PathAllocator()
        self.type_detector = type_detector

    def date_bucket(self, metadata: RestoreMetadata) -> Path:
        """``YYYY/MM`` from captured-at, then created-at, else ``unknown/00``."""
        when = metadata.captured_at or metadata.created_at
        if when is None:
            return UNKNOWN_DATE_BUCKET
        local = when.astimezone(self.tz)
        return Path(f"{local.year:04d}") / f"{local.month:02d}"

    def corrected_name(self, media_path: Path) -> Tuple[str, str]:
        """Rename the extension when the content signature disagrees.
        
        Returns:
            (destination name, extension-correction note or "")
        """
        detected = self.type_detector(media_path)
        if detected is None or extensions_agree(media_path.suffix, detected):
            return media_path.name, ""
        new_name = f"{media_path.stem}.{detected}"
        note = f"extension corrected: {media_path.suffix or '(none)'} -> .{detected}"
        return new_name, note

    def build(self, record: SidecarRecord, matched: Matched) -> Optional[WorkItem]:
        """
        Build the work item for one resolved sidecar.
        
        Returns:
            WorkItem, or None when the sidecar carries nothing to restore
        """
        metadata = extract_metadata(record)
        if metadata.is_empty:
            logger.info(f"Nothing to restore: {{'sidecar': {str(record.path)!r}}}")
            return None
        
        destination = None
        note = ""
        target_name = matched.path.name
        
        if self.output_dir is not None:
            target_name, note = self.corrected_name(matched.path)
            directory = self.output_dir / self.date_bucket(metadata)
            destination = self.allocator.allocate(directory, target_name)
            target_name = destination.name
            if note:
                logger.info(f"Extension mismatch: {{'media': {str(matched.path)!r}, 'note': {note!r}}}")
        
        return WorkItem(
            sidecar_path=record.path,
            media_path=matched.path,
            strategy=matched.strategy,
            metadata=metadata,
            tag_args=build_tag_args(metadata, self.tz, is_video_file(target_name)),
            destination=destination,
            extension_note=note,
        )
