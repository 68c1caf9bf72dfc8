"""In-memory lookup structures over all discovered media files.

Built once, then shared read-only by the resolver. All keys are lower-cased
NFC strings (see ``normalize_key``); values are sets because the same name
commonly appears in several album folders.
"""

import logging
from bisect import bisect_left
from collections import defaultdict
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, Set, Tuple

from takeout_metafix.common import normalize_key

from .models import MediaFile
from .sidecar_names import split_duplicate_index

logger = logging.getLogger(__name__)

_EMPTY: FrozenSet = frozenset()


def _keys_with_prefix(sorted_keys: List[str], prefix: str) -> Iterator[str]:
    i = bisect_left(sorted_keys, prefix)
    while i < len(sorted_keys) and sorted_keys[i].startswith(prefix):
        yield sorted_keys[i]
        i += 1


class CandidateIndex:
    """Name, base-name and directory maps over media files."""

    def __init__(self) -> None:
        self._by_name: Dict[str, Set[Path]] = defaultdict(set)
        self._by_base_name: Dict[str, Set[Path]] = defaultdict(set)
        self._by_stripped_name: Dict[str, Set[Path]] = defaultdict(set)
        self._by_directory: Dict[str, Set[Tuple[Path, float]]] = defaultdict(set)
        self._name_keys: List[str] = []
        self._base_name_keys: List[str] = []
        self._size = 0

    @classmethod
    def build(cls, media_files: Iterable[MediaFile]) -> "CandidateIndex":
        """Index media files in a single pass."""
        index = cls()
        for media in media_files:
            name_key = normalize_key(media.name)
            index._by_name[name_key].add(media.path)
            index._by_base_name[normalize_key(media.base_name)].add(media.path)
            index._by_directory[normalize_key(media.directory)].add((media.path, media.mtime))

            stripped, dup_index = split_duplicate_index(name_key)
            if dup_index is not None:
                index._by_stripped_name[stripped].add(media.path)

            index._size += 1

        index._name_keys = sorted(index._by_name)
        index._base_name_keys = sorted(index._by_base_name)
        
        logger.info(
            f"Candidate index built: {{'files': {index._size}, 'names': {len(index._name_keys)}, "
            f"'directories': {len(index._by_directory)}}}"
        )
        return index

    def __len__(self) -> int:
        return self._size

    def by_name(self, key: str) -> FrozenSet[Path]:
        return frozenset(self._by_name.get(key, _EMPTY))

    def by_base_name(self, key: str) -> FrozenSet[Path]:
        return frozenset(self._by_base_name.get(key, _EMPTY))

    def by_stripped_name(self, key: str) -> FrozenSet[Path]:
        """Files whose name, with its ``(N)`` marker removed, equals ``key``."""
        return frozenset(self._by_stripped_name.get(key, _EMPTY))

    def in_directory(self, directory: Path) -> FrozenSet[Tuple[Path, float]]:
        """(path, mtime) pairs of media files directly inside ``directory``."""
        return frozenset(self._by_directory.get(normalize_key(directory), _EMPTY))

    def names_with_prefix(self, prefix: str) -> Set[Path]:
        paths: Set[Path] = set()
        for key in _keys_with_prefix(self._name_keys, prefix):
            paths.update(self._by_name[key])
        return paths

    def base_names_with_prefix(self, prefix: str) -> Set[Path]:
        paths: Set[Path] = set()
        for key in _keys_with_prefix(self._base_name_keys, prefix):
            paths.update(self._by_base_name[key])
        return paths

    def base_names_containing(self, fragment: str) -> Set[Path]:
        # Linear scan; only reached by sidecars every cheaper stage missed
        paths: Set[Path] = set()
        for key in self._base_name_keys:
            if fragment in key:
                paths.update(self._by_base_name[key])
        return paths
