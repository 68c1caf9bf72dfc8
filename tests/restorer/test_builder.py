"""Tests for metadata extraction, path allocation and work item building."""

import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest

from takeout_metafix.restorer.builder import (
    PathAllocator,
    WorkItemBuilder,
    extract_metadata,
    select_geo,
)
from takeout_metafix.restorer.models import GeoPoint, Matched, MatchStrategy, SidecarRecord
from takeout_metafix.restorer.sidecar_parser import load_sidecar


CAPTURED = datetime(2021, 7, 4, 18, 30, tzinfo=timezone.utc)


def record(**fields) -> SidecarRecord:
    return SidecarRecord(path=Path("/src/IMG.jpg.supplemental-metadata.json"), **fields)


def matched(path: Path) -> Matched:
    return Matched(path=path, strategy=MatchStrategy.FILENAME_EXACT)


class TestSelectGeo:
    """Zero coordinates are a placeholder, not a location."""
    
    def test_primary_used(self):
        primary = GeoPoint(48.85, 2.35, 35.0)
        assert select_geo(record(geo_primary=primary, geo_fallback=GeoPoint(1.0, 1.0))) == primary
    
    def test_zero_primary_falls_back(self):
        fallback = GeoPoint(40.7, -74.0, 10.0)
        assert select_geo(record(geo_primary=GeoPoint(0.0, 0.0), geo_fallback=fallback)) == fallback
    
    def test_both_zero_means_no_gps(self):
        assert select_geo(record(geo_primary=GeoPoint(0.0, 0.0), geo_fallback=GeoPoint(0.0, 0.0))) is None
        assert select_geo(record()) is None
    
    def test_zero_latitude_alone_is_real(self):
        """Test that only the exact 0/0 pair is a placeholder."""
        equator = GeoPoint(0.0, 32.5)
        assert select_geo(record(geo_primary=equator)) == equator


class TestExtractMetadata:
    """Tests for extract_metadata."""
    
    def test_created_at_substitutes_for_missing_capture(self, tmp_path):
        """Scenario: photoTakenTime 0, creationTime 1700000000."""
        path = tmp_path / "IMG.jpg.supplemental-metadata.json"
        path.write_text(
            '{"title": "IMG.jpg", "photoTakenTime": {"timestamp": "0"},'
            ' "creationTime": {"timestamp": "1700000000"}}',
            encoding="utf-8",
        )
        metadata = extract_metadata(load_sidecar(path))
        created = datetime.fromtimestamp(1700000000, tz=timezone.utc)
        
        assert metadata.captured_at is None
        assert metadata.created_at == created
        assert metadata.modified_time == created
        assert "created_at" in metadata.restored_fields()
        assert "captured_at" not in metadata.restored_fields()
    
    def test_nothing_to_restore(self):
        assert extract_metadata(record()).is_empty
    
    def test_title_alone_is_restorable(self):
        metadata = extract_metadata(record(title="IMG.jpg"))
        assert not metadata.is_empty
        assert metadata.restored_fields() == ("title",)


class TestPathAllocator:
    """No destination is ever handed out twice."""
    
    def test_second_claim_gets_suffix(self, tmp_path):
        """Scenario: two sunset.jpg items in the same month bucket."""
        allocator = PathAllocator()
        first = allocator.allocate(tmp_path / "2021" / "07", "sunset.jpg")
        second = allocator.allocate(tmp_path / "2021" / "07", "sunset.jpg")
        
        assert first.name == "sunset.jpg"
        assert second.name == "sunset(1).jpg"
        assert second in allocator
    
    def test_existing_file_is_skipped(self, tmp_path):
        (tmp_path / "sunset.jpg").write_bytes(b"x")
        (tmp_path / "sunset(1).jpg").write_bytes(b"x")
        
        assert PathAllocator().allocate(tmp_path, "sunset.jpg").name == "sunset(2).jpg"
    
    def test_case_insensitive(self, tmp_path):
        allocator = PathAllocator()
        allocator.allocate(tmp_path, "Sunset.JPG")
        assert allocator.allocate(tmp_path, "sunset.jpg").name == "sunset(1).jpg"
    
    def test_concurrent_allocation_is_unique(self, tmp_path):
        allocator = PathAllocator()
        claimed = []
        lock = threading.Lock()
        
        def claim():
            for _ in range(50):
                path = allocator.allocate(tmp_path, "burst.jpg")
                with lock:
                    claimed.append(path)
        
        threads = [threading.Thread(target=claim) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        
        assert len(claimed) == 400
        assert len(set(claimed)) == 400
        assert len(allocator) == 400


class TestWorkItemBuilder:
    """Tests for WorkItemBuilder.build."""
    
    def test_in_place_item(self):
        builder = WorkItemBuilder()
        item = builder.build(record(captured_at=CAPTURED), matched(Path("/src/IMG.jpg")))
        
        assert item.destination is None
        assert item.target_path == Path("/src/IMG.jpg")
        assert "-DateTimeOriginal=2021:07:04 18:30:00" in item.tag_args
        assert item.extension_note == ""
    
    def test_nothing_to_restore_is_excluded(self):
        assert WorkItemBuilder().build(record(), matched(Path("/src/IMG.jpg"))) is None
    
    def test_output_tree_bucket(self, tmp_path):
        builder = WorkItemBuilder(output_dir=tmp_path, type_detector=lambda p: "jpg")
        item = builder.build(record(captured_at=CAPTURED), matched(Path("/src/IMG.jpg")))
        
        assert item.destination == tmp_path / "2021" / "07" / "IMG.jpg"
    
    def test_bucket_uses_configured_timezone(self, tmp_path):
        """Test that 2021-07-31 23:30 UTC lands in August in Tokyo."""
        late = datetime(2021, 7, 31, 23, 30, tzinfo=timezone.utc)
        builder = WorkItemBuilder(timezone_name="Asia/Tokyo", output_dir=tmp_path, type_detector=lambda p: None)
        item = builder.build(record(captured_at=late), matched(Path("/src/IMG.jpg")))
        
        assert item.destination.parent == tmp_path / "2021" / "08"
    
    def test_bucket_falls_back_to_created_then_unknown(self, tmp_path):
        builder = WorkItemBuilder(output_dir=tmp_path, type_detector=lambda p: None)
        created = builder.build(record(created_at=CAPTURED), matched(Path("/src/a.jpg")))
        unknown = builder.build(record(description="no dates"), matched(Path("/src/b.jpg")))
        
        assert created.destination.parent == tmp_path / "2021" / "07"
        assert unknown.destination.parent == tmp_path / "unknown" / "00"
    
    def test_extension_correction(self, tmp_path):
        """Test that a PNG saved as .jpg is written to a .png destination."""
        builder = WorkItemBuilder(output_dir=tmp_path, type_detector=lambda p: "png")
        item = builder.build(record(captured_at=CAPTURED), matched(Path("/src/IMG.jpg")))
        
        assert item.destination.name == "IMG.png"
        assert item.extension_note == "extension corrected: .jpg -> .png"
    
    def test_alias_extensions_are_not_corrected(self, tmp_path):
        builder = WorkItemBuilder(output_dir=tmp_path, type_detector=lambda p: "jpg")
        item = builder.build(record(captured_at=CAPTURED), matched(Path("/src/IMG.JPEG")))
        
        assert item.destination.name == "IMG.JPEG"
        assert item.extension_note == ""
    
    def test_tiff_based_raw_keeps_its_extension(self, tmp_path):
        """Test that a DNG reported as tiff is not renamed."""
        builder = WorkItemBuilder(output_dir=tmp_path, type_detector=lambda p: "tiff")
        item = builder.build(record(captured_at=CAPTURED), matched(Path("/src/IMG_0001.dng")))

        assert item.destination.name == "IMG_0001.dng"
        assert item.extension_note == ""
        assert builder.corrected_name(Path("/src/IMG_0002.NEF")) == ("IMG_0002.NEF", "")

    def test_same_destination_twice(self, tmp_path):
        """Test that the builder shares one allocator across items."""
        builder = WorkItemBuilder(output_dir=tmp_path, type_detector=lambda p: None)
        first = builder.build(record(captured_at=CAPTURED), matched(Path("/src/A/sunset.jpg")))
        second = builder.build(record(captured_at=CAPTURED), matched(Path("/src/B/sunset.jpg")))
        
        assert first.destination.name == "sunset.jpg"
        assert second.destination.name == "sunset(1).jpg"
    
    def test_video_destination_gets_quicktime_tags(self, tmp_path):
        builder = WorkItemBuilder(output_dir=tmp_path, type_detector=lambda p: "mp4")
        item = builder.build(record(captured_at=CAPTURED), matched(Path("/src/clip.MP4")))
        
        assert any(arg.startswith("-QuickTime:CreateDate=") for arg in item.tag_args)
    
    def test_detector_not_called_in_place(self):
        def fail(path):
            raise AssertionError("type detection is only for output trees")
        
        item = WorkItemBuilder(type_detector=fail).build(record(title="t"), matched(Path("/src/IMG.jpg")))
        assert item is not None
