"""ExifTool invocation for metadata writes.

One exiftool process per work item. Arguments travel through a UTF-8
argfile (``-@``) so non-ASCII filenames and long descriptions survive any
platform's command-line encoding.
"""

import logging
import os
import re
import subprocess
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Optional, Sequence

from .models import GeoPoint, Outcome, RestoreMetadata

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = frozenset({
    '.mp4', '.mov', '.m4v', '.avi', '.3gp', '.mkv', '.webm', '.mpg', '.mpeg', '.mts',
})

EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"

# "    1 image files updated"
_UPDATED_RE = re.compile(r'(\d+)\s+image files?\s+updated')


def is_video_file(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in VIDEO_EXTENSIONS


def format_exif_date(value: datetime, tz: tzinfo) -> str:
    """EXIF dates are wall-clock time without offset."""
    return value.astimezone(tz).strftime(EXIF_DATE_FORMAT)


def format_file_date(value: datetime, tz: tzinfo) -> str:
    """File system dates carry an explicit offset: ``2023:11:14 22:13:20+00:00``."""
    local = value.astimezone(tz)
    offset = local.strftime("%z")
    return f"{local.strftime(EXIF_DATE_FORMAT)}{offset[:3]}:{offset[3:]}"


def _escape_value(text: str) -> str:
    # Written with -E: HTML entities keep newlines out of the line-based argfile
    return (
        text.replace("&", "&amp;")
        .replace("\r\n", "&#xa;")
        .replace("\n", "&#xa;")
        .replace("\r", "&#xa;")
    )


def _gps_args(geo: GeoPoint, is_video: bool) -> list[str]:
    args = [
        f"-GPSLatitude={abs(geo.latitude)}",
        f"-GPSLatitudeRef={'N' if geo.latitude >= 0 else 'S'}",
        f"-GPSLongitude={abs(geo.longitude)}",
        f"-GPSLongitudeRef={'E' if geo.longitude >= 0 else 'W'}",
        f"-GPSAltitude={abs(geo.altitude)}",
        f"-GPSAltitudeRef={'Above Sea Level' if geo.altitude >= 0 else 'Below Sea Level'}",
    ]
    if is_video:
        args.append(f"-Keys:GPSCoordinates={geo.latitude}, {geo.longitude}, {geo.altitude}")
    return args


def build_tag_args(metadata: RestoreMetadata, tz: tzinfo, is_video: bool = False) -> tuple[str, ...]:
    """
    Translate restoration metadata into exiftool tag assignments.
    
    Date mapping:
        captured-at                -> DateTimeOriginal, CreateDate
        created-at, else captured  -> ModifyDate
        captured-at, else created  -> FileModifyDate
    QuickTime dates (videos) are written in UTC as the format requires.
    
    Args:
        metadata: Values to restore
        tz: Time zone for EXIF wall-clock dates
        is_video: Whether the target is a video container
        
    Returns:
        Tuple of ``-Tag=value`` arguments
    """
    args: list[str] = []
    
    taken = metadata.taken_time
    if taken is not None:
        value = format_exif_date(taken, tz)
        args += [f"-DateTimeOriginal={value}", f"-CreateDate={value}"]
        if is_video:
            utc_value = format_exif_date(taken, timezone.utc)
            args += [f"-QuickTime:CreateDate={utc_value}", f"-QuickTime:MediaCreateDate={utc_value}"]
    
    modified = metadata.modified_time
    if modified is not None:
        args.append(f"-ModifyDate={format_exif_date(modified, tz)}")
        if is_video:
            utc_value = format_exif_date(modified, timezone.utc)
            args += [f"-QuickTime:ModifyDate={utc_value}", f"-QuickTime:MediaModifyDate={utc_value}"]
    
    file_time = metadata.captured_at or metadata.created_at
    if file_time is not None:
        args.append(f"-FileModifyDate={format_file_date(file_time, tz)}")
    
    if metadata.description:
        text = _escape_value(metadata.description)
        args += [
            f"-ImageDescription={text}",
            f"-XMP-dc:Description={text}",
            f"-IPTC:Caption-Abstract={text}",
        ]
    
    if metadata.title:
        args.append(f"-XMP-dc:Title={_escape_value(metadata.title)}")
    
    if metadata.geo is not None:
        args += _gps_args(metadata.geo, is_video)
    
    return tuple(args)


@dataclass(frozen=True)
class ToolOutput:
    """Raw result of one exiftool run."""

    returncode: int
    stdout: str
    stderr: str

    def _lines(self) -> list[str]:
        return [line.strip() for line in (self.stderr + "\n" + self.stdout).splitlines() if line.strip()]

    @property
    def warnings(self) -> list[str]:
        return [line for line in self._lines() if line.startswith("Warning")]

    @property
    def errors(self) -> list[str]:
        return [line for line in self._lines() if line.startswith("Error")]

    @property
    def updated_count(self) -> int:
        m = _UPDATED_RE.search(self.stdout)
        return int(m.group(1)) if m else 0

    @property
    def diagnostic(self) -> str:
        return "; ".join(self.errors + self.warnings) or self.stderr.strip()


def classify_outcome(output: ToolOutput) -> Outcome:
    """
    Interpret an exiftool run.
    
    A nonzero exit counts as success-with-warning only when exiftool printed
    warnings but no errors and still confirmed the file was updated.
    """
    if output.returncode == 0:
        return Outcome.SUCCESS
    if output.warnings and not output.errors and output.updated_count > 0:
        return Outcome.SUCCESS_WITH_WARNING
    return Outcome.TOOL_FAILED


class ExifToolRunner:
    """Runs exiftool once per target file."""

    def __init__(self, exiftool_path: str = "exiftool", timeout: Optional[float] = None) -> None:
        self.exiftool_path = exiftool_path
        self.timeout = timeout

    def build_argfile_lines(
        self,
        target: Path,
        tag_args: Sequence[str],
        overwrite_original: bool,
    ) -> list[str]:
        lines = ["-E"]
        if overwrite_original:
            lines.append("-overwrite_original")
        lines.extend(tag_args)
        lines.append(str(target))
        return lines

    def write(self, target: Path, tag_args: Sequence[str], overwrite_original: bool) -> ToolOutput:
        """
        Write tags to ``target``.
        
        Raises:
            OSError: If exiftool cannot be launched
            subprocess.TimeoutExpired: If the configured timeout elapses
        """
        lines = self.build_argfile_lines(target, tag_args, overwrite_original)
        
        with tempfile.NamedTemporaryFile(
            mode="w", encoding="utf-8", suffix=".args", prefix="metafix-", delete=False
        ) as argfile:
            argfile.write("\n".join(lines) + "\n")
            argfile_path = argfile.name
        
        try:
            cmd = [self.exiftool_path, "-charset", "filename=utf8", "-@", argfile_path]
            logger.debug(f"Running exiftool: {{'target': {str(target)!r}, 'tags': {len(tag_args)}, 'overwrite': {overwrite_original}}}")
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        finally:
            try:
                os.unlink(argfile_path)
            except OSError as e:
                logger.debug(f"Could not remove argfile: {{'path': {argfile_path!r}, 'error': {str(e)!r}}}")
        
        return ToolOutput(returncode=result.returncode, stdout=result.stdout or "", stderr=result.stderr or "")
