"""Run summary and report generation."""

import csv
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .models import ExecutionResult, MatchStrategy, Outcome, WorkItem

logger = logging.getLogger(__name__)

RESULTS_FILE = "results.csv"
UNPARSEABLE_FILE = "unparseable_sidecars.txt"
UNMATCHED_FILE = "unmatched_sidecars.txt"
NO_METADATA_FILE = "no_metadata_sidecars.txt"

CSV_COLUMNS = [
    "sidecar",
    "media",
    "strategy",
    "outcome",
    "restored_fields",
    "gps",
    "destination",
    "note",
]

# Outcome labels for sidecars that never became an ExecutionResult
PARSE_ERROR = "parse-error"
NO_MATCH = "no-match"
NOTHING_TO_RESTORE = "nothing-to-restore"
PLANNED = "planned"
BUILD_ERROR = Outcome.EXCEPTION.value


@dataclass
class RunSummary:
    """Everything one run produced, in the order it was recorded."""

    root: Optional[Path] = None
    media_files: int = 0
    sidecars_found: int = 0
    dry_run: bool = False
    parse_errors: List[Tuple[Path, str]] = field(default_factory=list)
    unmatched: List[Tuple[Path, Optional[str], MatchStrategy]] = field(default_factory=list)
    no_metadata: List[Tuple[Path, Path, MatchStrategy]] = field(default_factory=list)
    build_errors: List[Tuple[Path, str]] = field(default_factory=list)
    planned: List[WorkItem] = field(default_factory=list)
    results: List[ExecutionResult] = field(default_factory=list)

    def record_parse_error(self, sidecar: Path, error: str) -> None:
        self.parse_errors.append((sidecar, error))

    def record_unmatched(self, sidecar: Path, title: Optional[str], last_stage: MatchStrategy) -> None:
        self.unmatched.append((sidecar, title, last_stage))

    def record_no_metadata(self, sidecar: Path, media: Path, strategy: MatchStrategy) -> None:
        self.no_metadata.append((sidecar, media, strategy))

    def record_build_error(self, sidecar: Path, error: str) -> None:
        self.build_errors.append((sidecar, error))

    def record_planned(self, item: WorkItem) -> None:
        self.planned.append(item)

    def record_results(self, results: List[ExecutionResult]) -> None:
        self.results.extend(results)

    @property
    def work_items(self) -> List[WorkItem]:
        return self.planned + [result.item for result in self.results]

    @property
    def matched_by_strategy(self) -> Counter:
        counts: Counter = Counter(item.strategy.label for item in self.work_items)
        counts.update(strategy.label for _, _, strategy in self.no_metadata)
        return counts

    @property
    def outcome_counts(self) -> Counter:
        return Counter(result.outcome.value for result in self.results)

    @property
    def gps_restored(self) -> int:
        return sum(
            1 for result in self.results
            if result.outcome.is_success and result.item.metadata.geo is not None
        )

    @property
    def extension_corrections(self) -> int:
        return sum(1 for item in self.work_items if item.extension_note)

    @property
    def failed(self) -> int:
        failed_items = sum(1 for result in self.results if not result.outcome.is_success)
        return failed_items + len(self.build_errors)

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

    def to_dict(self) -> Dict[str, Any]:
        """Nested totals for logging."""
        return {
            'discovery': {
                'media_files': self.media_files,
                'sidecars_found': self.sidecars_found,
            },
            'resolution': {
                'parse_errors': len(self.parse_errors),
                'unmatched': len(self.unmatched),
                'no_metadata': len(self.no_metadata),
                'build_errors': len(self.build_errors),
                'matched': sum(self.matched_by_strategy.values()),
                'by_strategy': dict(sorted(self.matched_by_strategy.items())),
            },
            'execution': {
                'dry_run': self.dry_run,
                'planned': len(self.planned),
                'outcomes': {outcome.value: self.outcome_counts.get(outcome.value, 0) for outcome in Outcome},
                'gps_restored': self.gps_restored,
                'extension_corrections': self.extension_corrections,
            },
        }

    def rows(self) -> List[Dict[str, str]]:
        """One report row per sidecar."""
        rows = []
        for sidecar, error in self.parse_errors:
            rows.append(_row(sidecar, outcome=PARSE_ERROR, note=error))
        for sidecar, title, last_stage in self.unmatched:
            rows.append(_row(sidecar, outcome=NO_MATCH, note=f"title={title!r}; last stage: {last_stage.label}"))
        for sidecar, media, strategy in self.no_metadata:
            rows.append(_row(sidecar, media=media, strategy=strategy.label, outcome=NOTHING_TO_RESTORE))
        for sidecar, error in self.build_errors:
            rows.append(_row(sidecar, outcome=BUILD_ERROR, note=error))
        for item in self.planned:
            rows.append(_item_row(item, PLANNED, item.extension_note))
        for result in self.results:
            note = "; ".join(n for n in (result.item.extension_note, result.diagnostic) if n)
            rows.append(_item_row(result.item, result.outcome.value, note))
        return rows


def _row(
    sidecar: Path,
    media: Optional[Path] = None,
    strategy: str = "",
    outcome: str = "",
    note: str = "",
) -> Dict[str, str]:
    return {
        "sidecar": str(sidecar),
        "media": str(media) if media is not None else "",
        "strategy": strategy,
        "outcome": outcome,
        "restored_fields": "",
        "gps": "",
        "destination": "",
        "note": note,
    }


def _item_row(item: WorkItem, outcome: str, note: str) -> Dict[str, str]:
    row = _row(item.sidecar_path, item.media_path, item.strategy.label, outcome, note)
    row["restored_fields"] = ",".join(item.metadata.restored_fields())
    row["gps"] = "yes" if item.metadata.geo is not None else "no"
    row["destination"] = str(item.destination) if item.destination is not None else ""
    return row


def write_report(summary: RunSummary, report_dir: Path) -> Path:
    """
    Write the CSV report and the three failure manifests.

    Args:
        summary: Completed run summary
        report_dir: Directory to write into (created if missing)

    Returns:
        Path of the CSV report
    """
    report_dir.mkdir(parents=True, exist_ok=True)

    results_path = report_dir / RESULTS_FILE
    with open(results_path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        writer.writerows(summary.rows())

    _write_manifest(
        report_dir / UNPARSEABLE_FILE,
        [f"{sidecar}\t{error}" for sidecar, error in summary.parse_errors],
    )
    _write_manifest(
        report_dir / UNMATCHED_FILE,
        [f"{sidecar}\t{title or ''}\t{stage.label}" for sidecar, title, stage in summary.unmatched],
    )
    _write_manifest(
        report_dir / NO_METADATA_FILE,
        [str(sidecar) for sidecar, _, _ in summary.no_metadata],
    )

    logger.info(f"Report written: {{'report_dir': {str(report_dir)!r}, 'rows': {len(summary.rows())}}}")
    return results_path


def _write_manifest(path: Path, lines: List[str]) -> None:
    with open(path, 'w', encoding='utf-8') as f:
        for line in lines:
            f.write(line + "\n")


def log_summary(summary: RunSummary) -> None:
    totals = summary.to_dict()
    logger.info(f"Discovery summary: {totals['discovery']}")
    logger.info(f"Resolution summary: {totals['resolution']}")
    logger.info(f"Execution summary: {totals['execution']}")

    for sidecar, error in summary.parse_errors:
        logger.debug(f"Unparseable sidecar: {{'sidecar': {str(sidecar)!r}, 'error': {error!r}}}")
    if summary.has_failures:
        logger.warning(f"Some items failed: {{'failed': {summary.failed}, 'total': {len(summary.results)}}}")
