"""Tests for path utilities."""

import unicodedata
from pathlib import Path

from takeout_metafix.common import normalize_key, normalize_path


class TestNormalizePath:
    """Tests for normalize_path function."""
    
    def test_forward_slashes(self):
        """Test that backslashes are converted to forward slashes."""
        result = normalize_path(r"C:\Users\test\photos\image.jpg")
        assert result == "C:/Users/test/photos/image.jpg"
    
    def test_unicode_normalization(self):
        """Test that decomposed names are composed (NFC)."""
        nfd = unicodedata.normalize("NFD", "café.jpg")
        assert normalize_path(nfd) == unicodedata.normalize("NFC", "café.jpg")
    
    def test_path_input(self):
        """Test that Path objects are accepted."""
        assert normalize_path(Path("photos/2023/image.jpg")) == "photos/2023/image.jpg"


class TestNormalizeKey:
    """Tests for normalize_key function."""
    
    def test_case_insensitive(self):
        """Test that keys ignore case."""
        assert normalize_key("IMG_0001.JPG") == normalize_key("img_0001.jpg")
    
    def test_composition_insensitive(self):
        """Test that NFD and NFC spellings produce the same key."""
        nfd = unicodedata.normalize("NFD", "Résumé.JPG")
        nfc = unicodedata.normalize("NFC", "résumé.jpg")
        assert normalize_key(nfd) == nfc
