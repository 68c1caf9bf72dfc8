"""File discovery for exported media trees.

Walks the tree once and splits files into media files (by extension) and
sidecar candidates. Pairing is left to the resolver.
"""

import logging
import os
from pathlib import Path

from .config import ScanConfig
from .models import DiscoveryResult, MediaFile
from .path_utils import should_scan_file

logger = logging.getLogger(__name__)


def discover(root: Path, scan_config: ScanConfig) -> DiscoveryResult:
    """Discover media files and sidecar candidates under ``root``.
    
    Args:
        root: Directory to scan (absolute path)
        scan_config: Extension configuration
        
    Returns:
        DiscoveryResult with media files sorted by path and sidecar paths
        
    Note:
        A media file that disappears or cannot be stat'ed between listing
        and access is skipped, not reported as an error.
    """
    media_extensions = set(scan_config.media_extensions)
    sidecar_extension = scan_config.sidecar_extension
    ignored_names = {name.lower() for name in scan_config.ignored_sidecar_names}
    
    media_files: list[MediaFile] = []
    sidecars: list[Path] = []
    skipped = 0
    
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        directory = Path(dirpath)
        for filename in sorted(filenames):
            file_path = directory / filename
            
            if not should_scan_file(file_path):
                skipped += 1
                continue
            
            suffix = file_path.suffix.lower()
            
            if suffix == sidecar_extension:
                if filename.lower() in ignored_names:
                    skipped += 1
                    continue
                sidecars.append(file_path)
            elif suffix in media_extensions:
                try:
                    mtime = file_path.stat().st_mtime
                except OSError as e:
                    logger.debug(f"Media file vanished during scan: {{'path': {str(file_path)!r}, 'error': {str(e)!r}}}")
                    skipped += 1
                    continue
                media_files.append(MediaFile.from_path(file_path, mtime))
            else:
                skipped += 1
    
    logger.info(f"Files collected: {{'media': {len(media_files)}, 'sidecars': {len(sidecars)}, 'skipped': {skipped}}}")
    
    return DiscoveryResult(
        root=root,
        media_files=media_files,
        sidecars=sidecars,
        skipped=skipped,
    )
