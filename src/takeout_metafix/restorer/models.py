"""Core data types flowing through the restore pipeline.

Everything here is immutable once created: media files and sidecar records
are produced by scanning, match results and work items by the resolution
phase, and execution results by the coordinator.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Union


class MatchStrategy(enum.Enum):
    """Resolver stages, in the order they are attempted."""

    FILENAME_DUPLICATE_INDEX = "filename-duplicate-index"
    FILENAME_EXACT = "filename-exact"
    FILENAME_INDEX_STRIPPED = "filename-index-stripped"
    FILENAME_PREFIX_LOCAL = "filename-prefix-local"
    FILENAME_PREFIX_GLOBAL = "filename-prefix-global"
    TITLE_EXACT = "title-exact"
    TITLE_NORMALIZED = "title-normalized"
    TITLE_INDEX_STRIPPED = "title-index-stripped"
    TITLE_BASENAME = "title-basename"
    TITLE_PREFIX = "title-prefix"
    TITLE_SUBSTRING = "title-substring"
    TIMESTAMP_NEAREST = "timestamp-nearest"

    @property
    def label(self) -> str:
        return self.value


class Outcome(enum.Enum):
    """Terminal state of one work item."""

    SUCCESS = "success"
    SUCCESS_WITH_WARNING = "success-with-warning"
    COPY_FAILED = "copy-failed"
    TOOL_FAILED = "tool-failed"
    EXCEPTION = "exception"

    @property
    def is_success(self) -> bool:
        return self in (Outcome.SUCCESS, Outcome.SUCCESS_WITH_WARNING)


@dataclass(frozen=True)
class MediaFile:
    """A discovered media file. Identity is its path."""

    path: Path
    name: str
    base_name: str  # name without extension
    directory: Path
    mtime: float  # seconds since epoch

    @classmethod
    def from_path(cls, path: Path, mtime: float) -> "MediaFile":
        return cls(
            path=path,
            name=path.name,
            base_name=path.stem,
            directory=path.parent,
            mtime=mtime,
        )


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float
    altitude: float = 0.0

    @property
    def is_placeholder(self) -> bool:
        """Exactly-zero coordinates are the exporter's "no data" value."""
        return self.latitude == 0.0 and self.longitude == 0.0


@dataclass(frozen=True)
class SidecarRecord:
    """Parsed contents of one sidecar file. All fields are optional."""

    path: Path
    title: Optional[str] = None
    original_filename: Optional[str] = None
    captured_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    description: Optional[str] = None
    geo_primary: Optional[GeoPoint] = None
    geo_fallback: Optional[GeoPoint] = None

    @property
    def declared_name(self) -> Optional[str]:
        """Name the sidecar claims for its media file."""
        return self.title or self.original_filename


@dataclass(frozen=True)
class Matched:
    path: Path
    strategy: MatchStrategy

    is_match = True


@dataclass(frozen=True)
class NoMatch:
    last_stage: MatchStrategy

    is_match = False


MatchResult = Union[Matched, NoMatch]


@dataclass(frozen=True)
class RestoreMetadata:
    """The metadata values that will be written to one media file."""

    captured_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    description: Optional[str] = None
    title: Optional[str] = None
    geo: Optional[GeoPoint] = None

    @property
    def taken_time(self) -> Optional[datetime]:
        return self.captured_at

    @property
    def modified_time(self) -> Optional[datetime]:
        return self.created_at or self.captured_at

    @property
    def is_empty(self) -> bool:
        return not self.restored_fields()

    def restored_fields(self) -> tuple[str, ...]:
        fields = []
        if self.captured_at is not None:
            fields.append("captured_at")
        if self.created_at is not None:
            fields.append("created_at")
        if self.description:
            fields.append("description")
        if self.title:
            fields.append("title")
        if self.geo is not None:
            fields.append("gps")
        return tuple(fields)


@dataclass(frozen=True)
class WorkItem:
    """One unit of restoration: a resolved pair, its tags, and where to write."""

    sidecar_path: Path
    media_path: Path
    strategy: MatchStrategy
    metadata: RestoreMetadata
    tag_args: tuple[str, ...]
    destination: Optional[Path] = None  # None when restoring in place
    extension_note: str = ""

    @property
    def target_path(self) -> Path:
        return self.destination if self.destination is not None else self.media_path


@dataclass(frozen=True)
class ExecutionResult:
    item: WorkItem
    outcome: Outcome
    exit_status: Optional[int] = None
    diagnostic: str = ""


@dataclass(frozen=True)
class DiscoveryResult:
    """Media files and sidecar candidates found under one root."""

    root: Path
    media_files: list[MediaFile] = field(default_factory=list)
    sidecars: list[Path] = field(default_factory=list)
    skipped: int = 0
