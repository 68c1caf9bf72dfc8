"""End-to-end restore run: discover, resolve, build, execute, report."""

import logging
from pathlib import Path
from typing import Callable, List, Optional

from .builder import WorkItemBuilder
from .candidate_index import CandidateIndex
from .config import MetafixConfig
from .coordinator import ExecutionCoordinator
from .discovery import discover
from .errors import SidecarParseError, classify_error
from .exiftool import ExifToolRunner
from .mime_detector import detect_type
from .models import SidecarRecord, WorkItem
from .resolver import Resolver
from .sidecar_parser import load_sidecars
from .summary import RunSummary, log_summary, write_report

logger = logging.getLogger(__name__)


class RestorePipeline:
    """Runs one restore over a source tree.
    
    Scanning, resolution and work item construction are sequential; only
    execution may run on several worker threads.
    """

    def __init__(
        self,
        config: MetafixConfig,
        runner: Optional[ExifToolRunner] = None,
        type_detector: Callable[[Path], Optional[str]] = detect_type,
    ) -> None:
        self.config = config
        self.runner = runner
        self.type_detector = type_detector

    def run(self, root: Path, dry_run: bool = False) -> RunSummary:
        """
        Restore metadata for every sidecar under ``root``.
        
        Args:
            root: Source tree containing media files and sidecars
            dry_run: Stop after building work items; nothing is copied or written
            
        Returns:
            RunSummary with one entry per sidecar
        """
        config = self.config
        discovery = discover(root, config.scan)
        summary = RunSummary(
            root=root,
            media_files=len(discovery.media_files),
            sidecars_found=len(discovery.sidecars),
            dry_run=dry_run,
        )
        
        index = CandidateIndex.build(discovery.media_files)
        resolver = Resolver(
            index,
            config.matching,
            config.scan.media_extensions,
            config.scan.sidecar_extension,
        )
        builder = WorkItemBuilder(
            timezone_name=config.execution.timezone,
            output_dir=Path(config.output.output_dir) if config.output.output_dir else None,
            type_detector=self.type_detector,
        )
        
        items = self._build_work_items(discovery.sidecars, resolver, builder, summary)
        logger.info(f"Work items built: {{'items': {len(items)}, 'dry_run': {dry_run}}}")
        
        if dry_run:
            for item in items:
                summary.record_planned(item)
        else:
            coordinator = ExecutionCoordinator(config.execution, self.runner)
            summary.record_results(coordinator.run(items))
        
        log_summary(summary)
        if config.output.report_dir:
            write_report(summary, Path(config.output.report_dir))
        
        return summary

    def _build_work_items(
        self,
        sidecars: List[Path],
        resolver: Resolver,
        builder: WorkItemBuilder,
        summary: RunSummary,
    ) -> List[WorkItem]:
        items: List[WorkItem] = []
        
        for path, loaded in load_sidecars(sidecars):
            if isinstance(loaded, SidecarParseError):
                summary.record_parse_error(path, loaded.message)
                continue
            
            try:
                item = self._build_one(path, loaded, resolver, builder, summary)
            except Exception as e:
                logger.error(f"Unexpected failure building work item for {path}: {e}", exc_info=True)
                summary.record_build_error(path, f"{classify_error(e)}: {e}")
                continue
            
            if item is not None:
                items.append(item)
        
        return items

    def _build_one(
        self,
        path: Path,
        record: SidecarRecord,
        resolver: Resolver,
        builder: WorkItemBuilder,
        summary: RunSummary,
    ) -> Optional[WorkItem]:
        title = record.declared_name
        match = resolver.resolve(path, title, record.captured_at)
        if not match.is_match:
            logger.info(
                f"Unmatched sidecar: {{'sidecar': {str(path)!r}, 'title': {title!r}, "
                f"'last_stage': {match.last_stage.label!r}}}"
            )
            summary.record_unmatched(path, title, match.last_stage)
            return None
        
        item = builder.build(record, match)
        if item is None:
            summary.record_no_metadata(path, match.path, match.strategy)
        return item
