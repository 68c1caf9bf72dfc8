"""Tool availability checker for external dependencies."""

import logging
import shutil

from .errors import ToolNotFoundError

logger = logging.getLogger(__name__)


def is_tool_available(executable: str) -> bool:
    return shutil.which(executable) is not None


def check_required_tools(exiftool_path: str = "exiftool") -> None:
    """
    Verify that exiftool can be launched.
    
    Args:
        exiftool_path: Executable name or path from config
        
    Raises:
        ToolNotFoundError: If exiftool is not available, with installation instructions
    """
    if is_tool_available(exiftool_path):
        logger.info(f"Tool available: {{'tool': 'exiftool', 'path': {shutil.which(exiftool_path)!r}}}")
        return
    
    logger.error(f"Tool not found: {{'tool': 'exiftool', 'path': {exiftool_path!r}, 'required': True}}")
    raise ToolNotFoundError(
        f"ExifTool '{exiftool_path}' is not available.\n\n{_get_installation_instructions()}",
        tool=exiftool_path,
    )


def _get_installation_instructions() -> str:
    return (
        "ExifTool writes the restored metadata. Install it:\n"
        "  - Windows: Download from https://exiftool.org/\n"
        "  - macOS: brew install exiftool\n"
        "  - Linux: sudo apt-get install libimage-exiftool-perl"
    )
