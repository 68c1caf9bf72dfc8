"""Sidecar-to-media resolution.

Maps one sidecar to at most one media file by trying an ordered cascade of
strategies. The first strategy that yields exactly one candidate wins;
strategies are never combined or scored against each other, and an
ambiguous candidate set is never resolved by guessing.

Order:
    0a  filename-derived name with its duplicate index re-applied
    0b  filename-derived name, exact
    0c  filename-derived name with any duplicate index stripped
    0d  filename-derived name as a prefix (truncated / extension-less names)
    1   declared title, case-insensitive
    2   declared title, Unicode-normalized
    3   declared title with duplicate index stripped (either direction)
    4   title base name against media base names
    5   title base name prefix
    6   title base name substring
    7   nearest modification time within the sidecar's directory

Every path-set lookup uses the same tie-break: a unique candidate inside the
sidecar's own directory wins, otherwise the set must be unique globally.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, FrozenSet, Iterable, List, Optional, Tuple

from takeout_metafix.common import normalize_key

from .candidate_index import CandidateIndex
from .config import MatchingConfig
from .models import Matched, MatchResult, MatchStrategy, NoMatch
from .sidecar_names import (
    DerivedName,
    derive_media_name,
    split_duplicate_index,
    with_duplicate_index,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolveQuery:
    """Everything a stage may look at for one sidecar."""

    sidecar_path: Path
    title: Optional[str]
    captured_at: Optional[datetime]
    derived: DerivedName
    settings: MatchingConfig
    media_extensions: FrozenSet[str]

    @property
    def directory_key(self) -> str:
        return normalize_key(self.sidecar_path.parent)

    def has_media_extension(self, name: str) -> bool:
        return os.path.splitext(name)[1].lower() in self.media_extensions

    @property
    def title_key(self) -> str:
        return normalize_key(self.title or "")

    @property
    def title_base_key(self) -> str:
        return normalize_key(os.path.splitext(self.title or "")[0])


StageFn = Callable[[CandidateIndex, ResolveQuery], Optional[Matched]]


@dataclass(frozen=True)
class Stage:
    strategy: MatchStrategy
    run: StageFn
    applies: Callable[[ResolveQuery], bool]


def _unique_candidate(paths: Iterable[Path], query: ResolveQuery) -> Tuple[Optional[Path], bool]:
    """Apply the directory-first tie-break.
    
    Returns:
        (path, is_local) when a single candidate survives, else (None, False)
    """
    paths = list(paths)
    if not paths:
        return None, False
    directory_key = query.directory_key
    local = [p for p in paths if normalize_key(p.parent) == directory_key]
    if len(local) == 1:
        return local[0], True
    if len(paths) == 1:
        return paths[0], False
    return None, False


def _match(paths: Iterable[Path], query: ResolveQuery, strategy: MatchStrategy) -> Optional[Matched]:
    path, _ = _unique_candidate(paths, query)
    if path is None:
        return None
    return Matched(path=path, strategy=strategy)


# --- Stage 0: filename-derived inference -----------------------------------

def _filename_duplicate_index(index: CandidateIndex, query: ResolveQuery) -> Optional[Matched]:
    derived = query.derived
    indexed_name = with_duplicate_index(derived.name, derived.duplicate_index)
    if query.has_media_extension(derived.name):
        paths = index.by_name(normalize_key(indexed_name))
    else:
        # "photo.supp(1).json" -> base name "photo(1)"; "IMG.jp(1).json" -> prefix "img(1).jp"
        paths = index.by_base_name(normalize_key(f"{derived.name}({derived.duplicate_index})"))
        if not paths:
            paths = frozenset(index.names_with_prefix(normalize_key(indexed_name)))
    return _match(paths, query, MatchStrategy.FILENAME_DUPLICATE_INDEX)


def _filename_exact(index: CandidateIndex, query: ResolveQuery) -> Optional[Matched]:
    return _match(index.by_name(normalize_key(query.derived.name)), query, MatchStrategy.FILENAME_EXACT)


def _filename_index_stripped(index: CandidateIndex, query: ResolveQuery) -> Optional[Matched]:
    stripped, _ = split_duplicate_index(query.derived.name)
    return _match(index.by_name(normalize_key(stripped)), query, MatchStrategy.FILENAME_INDEX_STRIPPED)


def _filename_prefix(index: CandidateIndex, query: ResolveQuery) -> Optional[Matched]:
    paths = index.names_with_prefix(normalize_key(query.derived.name))
    path, is_local = _unique_candidate(paths, query)
    if path is None:
        return None
    strategy = MatchStrategy.FILENAME_PREFIX_LOCAL if is_local else MatchStrategy.FILENAME_PREFIX_GLOBAL
    return Matched(path=path, strategy=strategy)


def _derived_has_index(query: ResolveQuery) -> bool:
    return bool(query.derived.name) and query.derived.duplicate_index is not None


def _derived_present(query: ResolveQuery) -> bool:
    return bool(query.derived.name)


def _derived_carries_index(query: ResolveQuery) -> bool:
    return split_duplicate_index(query.derived.name)[1] is not None


def _derived_prefix_eligible(query: ResolveQuery) -> bool:
    derived = query.derived
    if len(derived.name) < query.settings.filename_prefix_min_chars:
        return False
    return (
        not query.has_media_extension(derived.name)
        or derived.extension_only
        or derived.degenerate
    )


# --- Stages 1-6: declared title ---------------------------------------------

def _title_exact(index: CandidateIndex, query: ResolveQuery) -> Optional[Matched]:
    # Lower-case only: a decomposed title misses here and is caught by stage 2
    return _match(index.by_name(query.title.lower()), query, MatchStrategy.TITLE_EXACT)


def _title_normalized(index: CandidateIndex, query: ResolveQuery) -> Optional[Matched]:
    return _match(index.by_name(query.title_key), query, MatchStrategy.TITLE_NORMALIZED)


def _title_index_stripped(index: CandidateIndex, query: ResolveQuery) -> Optional[Matched]:
    key = query.title_key
    stripped, dup_index = split_duplicate_index(key)
    if dup_index is not None:
        matched = _match(index.by_name(stripped), query, MatchStrategy.TITLE_INDEX_STRIPPED)
        if matched is not None:
            return matched
    # Other direction: the title is plain but the media file carries "(N)"
    return _match(index.by_stripped_name(key), query, MatchStrategy.TITLE_INDEX_STRIPPED)


def _title_basename(index: CandidateIndex, query: ResolveQuery) -> Optional[Matched]:
    return _match(index.by_base_name(query.title_base_key), query, MatchStrategy.TITLE_BASENAME)


def _title_prefix(index: CandidateIndex, query: ResolveQuery) -> Optional[Matched]:
    prefix = query.title_base_key[:query.settings.prefix_match_chars]
    return _match(index.base_names_with_prefix(prefix), query, MatchStrategy.TITLE_PREFIX)


def _title_substring(index: CandidateIndex, query: ResolveQuery) -> Optional[Matched]:
    fragment = query.title_base_key[:query.settings.substring_match_chars]
    return _match(index.base_names_containing(fragment), query, MatchStrategy.TITLE_SUBSTRING)


def _has_title(query: ResolveQuery) -> bool:
    return bool(query.title)


def _title_base_long_enough(query: ResolveQuery) -> bool:
    # Minimum of 5 characters for the fuzzy title stages
    return bool(query.title) and len(query.title_base_key) >= 5


# --- Stage 7: timestamp -----------------------------------------------------

def _timestamp_nearest(index: CandidateIndex, query: ResolveQuery) -> Optional[Matched]:
    target = query.captured_at.timestamp()
    best: Optional[Path] = None
    best_diff: Optional[float] = None
    tied = False
    for path, mtime in index.in_directory(query.sidecar_path.parent):
        diff = abs(mtime - target)
        if best_diff is None or diff < best_diff:
            best, best_diff, tied = path, diff, False
        elif diff == best_diff:
            tied = True
    if best is None or tied or best_diff >= query.settings.time_tolerance_seconds:
        return None
    return Matched(path=best, strategy=MatchStrategy.TIMESTAMP_NEAREST)


def _has_captured_at(query: ResolveQuery) -> bool:
    return query.captured_at is not None


STAGES: List[Stage] = [
    Stage(MatchStrategy.FILENAME_DUPLICATE_INDEX, _filename_duplicate_index, _derived_has_index),
    Stage(MatchStrategy.FILENAME_EXACT, _filename_exact, _derived_present),
    Stage(MatchStrategy.FILENAME_INDEX_STRIPPED, _filename_index_stripped, _derived_carries_index),
    Stage(MatchStrategy.FILENAME_PREFIX_GLOBAL, _filename_prefix, _derived_prefix_eligible),
    Stage(MatchStrategy.TITLE_EXACT, _title_exact, _has_title),
    Stage(MatchStrategy.TITLE_NORMALIZED, _title_normalized, _has_title),
    Stage(MatchStrategy.TITLE_INDEX_STRIPPED, _title_index_stripped, _has_title),
    Stage(MatchStrategy.TITLE_BASENAME, _title_basename, _has_title),
    Stage(MatchStrategy.TITLE_PREFIX, _title_prefix, _title_base_long_enough),
    Stage(MatchStrategy.TITLE_SUBSTRING, _title_substring, _title_base_long_enough),
    Stage(MatchStrategy.TIMESTAMP_NEAREST, _timestamp_nearest, _has_captured_at),
]


class Resolver:
    """Resolves sidecars against a fixed CandidateIndex.
    
    Resolution is a pure function of the index and its arguments: calling
    ``resolve`` twice with the same inputs yields the same MatchResult.
    """

    def __init__(
        self,
        index: CandidateIndex,
        settings: MatchingConfig,
        media_extensions: Iterable[str],
        sidecar_extension: str = ".json",
        stages: Optional[List[Stage]] = None,
    ) -> None:
        self.index = index
        self.settings = settings
        self.media_extensions = frozenset(ext.lower() for ext in media_extensions)
        self.sidecar_extension = sidecar_extension
        self.stages = stages if stages is not None else STAGES

    def resolve(
        self,
        sidecar_path: Path,
        title: Optional[str],
        captured_at: Optional[datetime] = None,
    ) -> MatchResult:
        """Return Matched(path, strategy) or NoMatch(last stage attempted)."""
        query = ResolveQuery(
            sidecar_path=sidecar_path,
            title=title,
            captured_at=captured_at,
            derived=derive_media_name(sidecar_path.name, self.sidecar_extension),
            settings=self.settings,
            media_extensions=self.media_extensions,
        )
        
        last_attempted = self.stages[0].strategy
        for stage in self.stages:
            if not stage.applies(query):
                continue
            last_attempted = stage.strategy
            matched = stage.run(self.index, query)
            if matched is not None:
                logger.debug(
                    f"Matched sidecar: {{'sidecar': {str(sidecar_path)!r}, 'media': {str(matched.path)!r}, "
                    f"'strategy': {matched.strategy.label!r}}}"
                )
                return matched
        
        logger.debug(
            f"No match: {{'sidecar': {str(sidecar_path)!r}, 'title': {title!r}, "
            f"'last_stage': {last_attempted.label!r}}}"
        )
        return NoMatch(last_stage=last_attempted)
