"""Tests for exiftool argument building, invocation and outcome classification."""

import subprocess
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch
from zoneinfo import ZoneInfo

import pytest

from takeout_metafix.restorer.exiftool import (
    ExifToolRunner,
    ToolOutput,
    build_tag_args,
    classify_outcome,
    format_file_date,
)
from takeout_metafix.restorer.models import GeoPoint, Outcome, RestoreMetadata


UTC = timezone.utc
CAPTURED = datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)
CREATED = datetime(2023, 11, 20, 8, 0, 0, tzinfo=UTC)


class TestBuildTagArgs:
    """Tests for build_tag_args."""
    
    def test_date_mapping(self):
        args = build_tag_args(RestoreMetadata(captured_at=CAPTURED, created_at=CREATED), UTC)
        
        assert "-DateTimeOriginal=2023:11:14 22:13:20" in args
        assert "-CreateDate=2023:11:14 22:13:20" in args
        assert "-ModifyDate=2023:11:20 08:00:00" in args
        assert "-FileModifyDate=2023:11:14 22:13:20+00:00" in args
    
    def test_created_only(self):
        """Test that created-at fills both the modify and file dates."""
        args = build_tag_args(RestoreMetadata(created_at=CREATED), UTC)
        
        assert not any(arg.startswith("-DateTimeOriginal=") for arg in args)
        assert "-ModifyDate=2023:11:20 08:00:00" in args
        assert "-FileModifyDate=2023:11:20 08:00:00+00:00" in args
    
    def test_captured_only_fills_modify_date(self):
        args = build_tag_args(RestoreMetadata(captured_at=CAPTURED), UTC)
        assert "-ModifyDate=2023:11:14 22:13:20" in args
    
    def test_timezone_rendering(self):
        """Test EXIF wall-clock time in the configured zone, QuickTime in UTC."""
        args = build_tag_args(RestoreMetadata(captured_at=CAPTURED), ZoneInfo("Europe/Berlin"), is_video=True)
        
        assert "-DateTimeOriginal=2023:11:14 23:13:20" in args
        assert "-QuickTime:CreateDate=2023:11:14 22:13:20" in args
        assert "-FileModifyDate=2023:11:14 23:13:20+01:00" in args
    
    def test_text_fields_are_escaped(self):
        metadata = RestoreMetadata(description="Fish & chips\nat the pier", title="Lunch")
        args = build_tag_args(metadata, UTC)
        
        assert "-ImageDescription=Fish &amp; chips&#xa;at the pier" in args
        assert "-XMP-dc:Description=Fish &amp; chips&#xa;at the pier" in args
        assert "-XMP-dc:Title=Lunch" in args
        assert all("\n" not in arg for arg in args)
    
    def test_gps_southern_western(self):
        args = build_tag_args(RestoreMetadata(geo=GeoPoint(-33.86, -151.2, -5.0)), UTC)
        
        assert "-GPSLatitude=33.86" in args
        assert "-GPSLatitudeRef=S" in args
        assert "-GPSLongitude=151.2" in args
        assert "-GPSLongitudeRef=W" in args
        assert "-GPSAltitudeRef=Below Sea Level" in args
        assert not any(arg.startswith("-Keys:GPSCoordinates") for arg in args)
    
    def test_gps_video_coordinates(self):
        args = build_tag_args(RestoreMetadata(geo=GeoPoint(48.5, 2.25, 30.0)), UTC, is_video=True)
        assert "-Keys:GPSCoordinates=48.5, 2.25, 30.0" in args
    
    def test_no_geo_no_gps_tags(self):
        args = build_tag_args(RestoreMetadata(title="x"), UTC)
        assert not any("GPS" in arg for arg in args)


def test_format_file_date_negative_offset():
    assert format_file_date(CAPTURED, ZoneInfo("America/New_York")) == "2023:11:14 17:13:20-05:00"


class TestClassifyOutcome:
    """Exit status and diagnostics decide the outcome."""
    
    def test_zero_exit(self):
        assert classify_outcome(ToolOutput(0, "    1 image files updated\n", "")) is Outcome.SUCCESS
    
    def test_warning_with_update(self):
        output = ToolOutput(1, "    1 image files updated\n", "Warning: [minor] Fixed incorrect URN\n")
        assert classify_outcome(output) is Outcome.SUCCESS_WITH_WARNING
    
    def test_warning_without_update(self):
        output = ToolOutput(1, "    0 image files updated\n    1 image files unchanged\n", "Warning: Nothing to write\n")
        assert classify_outcome(output) is Outcome.TOOL_FAILED
    
    def test_error_with_update_is_failure(self):
        output = ToolOutput(
            1,
            "    1 image files updated\n",
            "Warning: something\nError: Not a valid JPG - /x/a.jpg\n",
        )
        assert classify_outcome(output) is Outcome.TOOL_FAILED
    
    def test_error_only(self):
        output = ToolOutput(1, "    0 image files updated\n    1 files weren't updated due to errors\n",
                            "Error: File not found - /x/a.jpg\n")
        assert classify_outcome(output) is Outcome.TOOL_FAILED
        assert "Error: File not found" in output.diagnostic


class TestExifToolRunner:
    """Tests for ExifToolRunner.write."""
    
    def test_argfile_lines(self):
        runner = ExifToolRunner()
        lines = runner.build_argfile_lines(Path("/x/ñandú.jpg"), ["-XMP-dc:Title=t"], overwrite_original=True)
        assert lines == ["-E", "-overwrite_original", "-XMP-dc:Title=t", "/x/ñandú.jpg"]
    
    def test_argfile_without_overwrite(self):
        lines = ExifToolRunner().build_argfile_lines(Path("/x/a.jpg"), [], overwrite_original=False)
        assert "-overwrite_original" not in lines
    
    def test_write_uses_utf8_argfile(self):
        """Test the command shape and the argfile contents seen by the subprocess."""
        seen = {}
        
        def fake_run(cmd, **kwargs):
            argfile = Path(cmd[cmd.index("-@") + 1])
            seen["cmd"] = cmd
            seen["kwargs"] = kwargs
            seen["argfile"] = argfile
            seen["lines"] = argfile.read_text(encoding="utf-8").splitlines()
            return subprocess.CompletedProcess(cmd, 0, stdout="    1 image files updated\n", stderr="")
        
        runner = ExifToolRunner("/opt/exiftool", timeout=30)
        with patch("takeout_metafix.restorer.exiftool.subprocess.run", side_effect=fake_run):
            output = runner.write(Path("/x/ñandú.jpg"), ["-XMP-dc:Title=Ñandú"], overwrite_original=False)
        
        assert seen["cmd"][:3] == ["/opt/exiftool", "-charset", "filename=utf8"]
        assert seen["kwargs"]["timeout"] == 30
        assert seen["lines"] == ["-E", "-XMP-dc:Title=Ñandú", "/x/ñandú.jpg"]
        assert not seen["argfile"].exists()
        assert output.returncode == 0
        assert output.updated_count == 1
    
    def test_launch_failure_propagates(self):
        runner = ExifToolRunner("missing-exiftool")
        with patch("takeout_metafix.restorer.exiftool.subprocess.run", side_effect=FileNotFoundError("missing")):
            with pytest.raises(FileNotFoundError):
                runner.write(Path("/x/a.jpg"), [], overwrite_original=True)
    
    def test_timeout_propagates(self):
        runner = ExifToolRunner(timeout=1)
        with patch(
            "takeout_metafix.restorer.exiftool.subprocess.run",
            side_effect=subprocess.TimeoutExpired(["exiftool"], 1),
        ):
            with pytest.raises(subprocess.TimeoutExpired):
                runner.write(Path("/x/a.jpg"), [], overwrite_original=True)
