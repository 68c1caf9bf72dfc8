"""Loader for Google Takeout JSON sidecar files."""

import json
import logging
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple, Union

from .errors import SidecarParseError
from .models import GeoPoint, SidecarRecord

logger = logging.getLogger(__name__)

# A per-media record carries at least one of these keys
RECORD_KEYS = frozenset({
    'title', 'description', 'photoTakenTime', 'creationTime', 'geoData', 'geoDataExif',
})


def load_sidecar(path: Path) -> SidecarRecord:
    """
    Parse a Google Takeout JSON sidecar into a SidecarRecord.
    
    Args:
        path: Path to the sidecar file
        
    Returns:
        SidecarRecord with every field the sidecar provides
        
    Raises:
        SidecarParseError: If the file cannot be read, is not valid JSON,
            or does not look like a per-media metadata record
    """
    try:
        with open(path, 'r', encoding='utf-8-sig') as f:
            data = json.load(f)
    except (OSError, ValueError, RecursionError) as e:
        # ValueError covers JSONDecodeError, UnicodeDecodeError and over-long integers
        raise SidecarParseError(f"Cannot parse sidecar {path.name}: {e}", path=str(path)) from e
    
    if not isinstance(data, dict):
        raise SidecarParseError(f"Sidecar is not a JSON object: {path.name}", path=str(path))
    
    if not RECORD_KEYS.intersection(data):
        raise SidecarParseError(f"Not a media metadata record: {path.name}", path=str(path))
    
    return SidecarRecord(
        path=path,
        title=_clean_text(data.get('title')),
        original_filename=_clean_text(data.get('originalFilename')),
        captured_at=_parse_timestamp(data.get('photoTakenTime')),
        created_at=_parse_timestamp(data.get('creationTime')),
        description=_clean_text(data.get('description')),
        geo_primary=_parse_geo_data(data.get('geoData')),
        geo_fallback=_parse_geo_data(data.get('geoDataExif')),
    )


def load_sidecars(
    paths: Iterable[Path],
) -> Iterator[Tuple[Path, Union[SidecarRecord, SidecarParseError]]]:
    """Load sidecars one by one, yielding the parse error instead of raising it."""
    for path in paths:
        try:
            record = load_sidecar(path)
        except SidecarParseError as e:
            logger.warning(f"Unparseable sidecar: {{'path': {str(path)!r}, 'error': {e.message!r}}}")
            yield path, e
            continue
        except Exception as e:
            logger.error(f"Unexpected failure loading sidecar {path}: {e}", exc_info=True)
            yield path, SidecarParseError(f"Cannot parse sidecar {path.name}: {e}", path=str(path))
            continue
        yield path, record


def _clean_text(value: Any) -> Optional[str]:
    """Trim text; empty strings and non-strings are absent."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _parse_timestamp(timestamp_data: Any) -> Optional[datetime]:
    """
    Parse a ``{"timestamp": "1700000000", "formatted": "..."}`` object.
    
    Zero is the exporter's placeholder and counts as absent.
    
    Returns:
        Timezone-aware UTC datetime or None
    """
    if not isinstance(timestamp_data, dict):
        return None
    
    raw = timestamp_data.get('timestamp')
    if raw is None:
        return None
    
    try:
        seconds = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        logger.debug(f"Unparsable timestamp: {{'value': {raw!r}}}")
        return None
    
    if seconds == 0:
        return None
    
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        logger.debug(f"Timestamp out of range: {{'value': {raw!r}}}")
        return None


def _parse_geo_data(geo_data: Any) -> Optional[GeoPoint]:
    """
    Parse a geoData / geoDataExif object.
    
    Returns:
        GeoPoint, or None when the object is missing or has no usable coordinates.
        Zero placeholders are kept here; the builder decides on fallback.
    """
    if not isinstance(geo_data, dict):
        return None
    
    try:
        latitude = float(geo_data['latitude'])
        longitude = float(geo_data['longitude'])
        altitude = float(geo_data.get('altitude', 0.0) or 0.0)
    except (KeyError, TypeError, ValueError, OverflowError):
        return None
    
    if not all(math.isfinite(v) for v in (latitude, longitude, altitude)):
        logger.debug(f"Non-finite coordinates: {{'geo': {geo_data!r}}}")
        return None
    if abs(latitude) > 90.0 or abs(longitude) > 180.0:
        logger.debug(f"Coordinates out of range: {{'latitude': {latitude}, 'longitude': {longitude}}}")
        return None
    
    return GeoPoint(latitude=latitude, longitude=longitude, altitude=altitude)
