"""Tests for tool availability checker."""

from unittest.mock import patch

import pytest

from takeout_metafix.restorer.errors import ToolNotFoundError
from takeout_metafix.restorer.tool_checker import check_required_tools, is_tool_available


class TestCheckRequiredTools:
    """Tests for check_required_tools."""
    
    def test_available(self):
        with patch("takeout_metafix.restorer.tool_checker.shutil.which", return_value="/usr/bin/exiftool"):
            check_required_tools("exiftool")
    
    def test_missing_raises_with_instructions(self):
        with patch("takeout_metafix.restorer.tool_checker.shutil.which", return_value=None):
            with pytest.raises(ToolNotFoundError) as exc_info:
                check_required_tools("/opt/missing/exiftool")
        
        assert "exiftool.org" in exc_info.value.message
        assert exc_info.value.context == {"tool": "/opt/missing/exiftool"}
    
    def test_is_tool_available_returns_bool(self):
        with patch("takeout_metafix.restorer.tool_checker.shutil.which", return_value=None):
            assert is_tool_available("exiftool") is False
