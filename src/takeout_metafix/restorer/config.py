"""Configuration models for the metadata restorer."""

from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ConfigDict, field_validator
from takeout_metafix.common import LoggingConfig

DEFAULT_MEDIA_EXTENSIONS = [
    ".jpg", ".jpeg", ".jpe", ".jfif", ".png", ".gif", ".webp", ".heic", ".heif",
    ".bmp", ".tif", ".tiff", ".dng", ".cr2", ".cr3", ".arw", ".nef", ".raf", ".orf",
    ".mp4", ".mov", ".m4v", ".avi", ".3gp", ".mkv", ".webm", ".mpg", ".mpeg", ".mts",
]

# Album-level and account-level JSON files that sit next to media but describe no single file
DEFAULT_IGNORED_SIDECAR_NAMES = [
    "metadata.json",
    "print-subscriptions.json",
    "shared_album_comments.json",
    "user-generated-memory-titles.json",
]


class ScanConfig(BaseModel):
    """Which files count as media and which as sidecars."""
    
    model_config = ConfigDict(extra='forbid')
    
    media_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_MEDIA_EXTENSIONS),
        description="Media file extensions (case-insensitive, with or without leading dot)"
    )
    sidecar_extension: str = Field(
        default=".json",
        description="Extension of sidecar description files"
    )
    ignored_sidecar_names: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IGNORED_SIDECAR_NAMES),
        description="Sidecar-extension files that are never per-media records"
    )
    
    @field_validator('media_extensions', mode='after')
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        """Lower-case and dot-prefix every extension."""
        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalized.append(ext if ext.startswith('.') else f".{ext}")
        if not normalized:
            raise ValueError("media_extensions must not be empty")
        return normalized
    
    @field_validator('sidecar_extension', mode='after')
    @classmethod
    def normalize_sidecar_extension(cls, v: str) -> str:
        v = v.strip().lower()
        return v if v.startswith('.') else f".{v}"


class MatchingConfig(BaseModel):
    """Tuning knobs for the sidecar-to-media resolver."""
    
    model_config = ConfigDict(extra='forbid')
    
    prefix_match_chars: int = Field(
        default=20,
        ge=5,
        description="Characters of the title base name compared in the prefix stage"
    )
    substring_match_chars: int = Field(
        default=12,
        ge=5,
        description="Characters of the title base name used in the substring stage"
    )
    filename_prefix_min_chars: int = Field(
        default=4,
        ge=1,
        description="Minimum derived-name length for filename prefix matching"
    )
    time_tolerance_seconds: float = Field(
        default=86400,
        gt=0,
        description="Maximum capture/mtime difference accepted by the timestamp stage"
    )


class ExecutionConfig(BaseModel):
    """How work items are executed against exiftool."""
    
    model_config = ConfigDict(extra='forbid')
    
    workers: int = Field(
        default=1,
        ge=1,
        le=32,
        description="Concurrent exiftool invocations (1 = sequential)"
    )
    exiftool_path: str = Field(
        default="exiftool",
        description="ExifTool executable name or path"
    )
    tool_timeout_seconds: float | None = Field(
        default=300,
        gt=0,
        description="Per-invocation timeout (None disables the timeout)"
    )
    backup_policy: Literal["keep", "delete", "rename"] = Field(
        default="keep",
        description="What to do with exiftool's *_original backup after an in-place write"
    )
    no_backup: bool = Field(
        default=False,
        description="Overwrite originals in place without exiftool creating a backup"
    )
    timezone: str = Field(
        default="UTC",
        description="IANA time zone used to render EXIF wall-clock dates"
    )
    
    @field_validator('backup_policy', mode='before')
    @classmethod
    def normalize_policy(cls, v: str) -> str:
        if isinstance(v, str):
            return v.lower()
        return v
    
    @field_validator('timezone', mode='after')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v


class OutputConfig(BaseModel):
    """Where restored files and reports go."""
    
    model_config = ConfigDict(extra='forbid')
    
    output_dir: str | None = Field(
        default=None,
        description="Dated output tree root (None = restore in place)"
    )
    report_dir: str | None = Field(
        default=None,
        description="Directory for the CSV report and failure manifests"
    )


class MetafixConfig(BaseModel):
    """Root configuration for the restorer."""
    
    model_config = ConfigDict(extra='forbid')
    
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
