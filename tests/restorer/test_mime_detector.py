"""Tests for content-signature type detection."""

import pytest

from takeout_metafix.restorer.mime_detector import canonical_extension, detect_type, extensions_agree


PNG_HEADER = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG_HEADER = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 32
TIFF_HEADER = b"II*\x00\x08\x00\x00\x00" + b"\x00" * 32


class TestCanonicalExtension:
    def test_aliases(self):
        assert canonical_extension(".JPEG") == "jpg"
        assert canonical_extension("tif") == "tiff"
        assert canonical_extension(".Png") == "png"
    
    def test_agree(self):
        assert extensions_agree(".jpg", "jpeg")
        assert not extensions_agree(".jpg", "png")
    
    @pytest.mark.parametrize("suffix", [".dng", ".NEF", ".arw", ".cr2", ".orf", ".raf"])
    def test_tiff_detection_agrees_with_raw(self, suffix):
        assert extensions_agree(suffix, "tiff")
        assert extensions_agree(suffix, "tif")
    
    def test_raw_does_not_excuse_other_types(self):
        assert not extensions_agree(".dng", "jpg")
        assert not extensions_agree(".jpg", "tiff")


class TestDetectType:
    """Tests for detect_type."""
    
    def test_png_named_jpg(self, tmp_path):
        path = tmp_path / "IMG.jpg"
        path.write_bytes(PNG_HEADER)
        assert detect_type(path) == "png"
    
    def test_jpeg(self, tmp_path):
        path = tmp_path / "IMG.jpeg"
        path.write_bytes(JPEG_HEADER)
        assert detect_type(path) == "jpg"
    
    def test_unknown_content(self, tmp_path):
        path = tmp_path / "notes.jpg"
        path.write_bytes(b"plain text, no signature")
        assert detect_type(path) is None
    
    def test_unreadable(self, tmp_path):
        assert detect_type(tmp_path / "missing.jpg") is None
    
    def test_tiff_container_raw(self, tmp_path):
        path = tmp_path / "IMG_0001.dng"
        path.write_bytes(TIFF_HEADER)
        detected = detect_type(path)
        assert detected == "tiff"
        assert extensions_agree(path.suffix, detected)
