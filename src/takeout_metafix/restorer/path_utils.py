"""Path filtering for discovery."""

from pathlib import Path

# System files to exclude (cross-platform)
SYSTEM_FILES = {
    'thumbs.db',      # Windows thumbnail cache
    'desktop.ini',    # Windows folder settings
    '.ds_store',      # macOS folder metadata
    'icon\r',         # macOS custom folder icon (has literal carriage return!)
}

TEMP_EXTENSIONS = {'.tmp', '.temp', '.cache', '.bak', '.swp'}

# ExifTool keeps the pre-write file as "<name>_original"
EXIFTOOL_BACKUP_SUFFIX = '_original'


def should_scan_file(path: Path) -> bool:
    """
    Determine if a file should be considered at all during discovery.
    
    Excluded files:
    - System files (Thumbs.db, .DS_Store, desktop.ini, Icon\\r)
    - Temporary files (.tmp, .temp, .cache, .bak, .swp)
    - ExifTool backups left by a previous in-place run (*_original)
    
    Hidden files are NOT excluded; exports contain valid media such as
    ``.facebook_865716343.jpg``.
    
    Args:
        path: Path to check
        
    Returns:
        True if the file should be classified as media or sidecar
    """
    filename = path.name.lower()
    
    if filename in SYSTEM_FILES:
        return False
    
    if path.suffix.lower() in TEMP_EXTENSIONS:
        return False
    
    if filename.endswith(EXIFTOOL_BACKUP_SUFFIX):
        return False
    
    return True
