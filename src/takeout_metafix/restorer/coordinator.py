"""Execution coordinator.

Runs every WorkItem through the same per-item function, either
sequentially (workers == 1) or on a fixed pool of worker threads. Each
item yields exactly one ExecutionResult; a failing item never affects
another one.
"""

import logging
import shutil
import subprocess
import threading
from pathlib import Path
from queue import Empty, Queue
from typing import List, Sequence

from .config import ExecutionConfig
from .errors import CopyFailedError, classify_error
from .exiftool import ExifToolRunner, classify_outcome
from .models import ExecutionResult, Outcome, WorkItem
from .parallel import worker_thread_main
from .path_utils import EXIFTOOL_BACKUP_SUFFIX
from .progress import ProgressTracker

logger = logging.getLogger(__name__)


def backup_path_for(media_path: Path) -> Path:
    """Where exiftool leaves the pre-write copy: ``IMG.jpg_original``."""
    return media_path.with_name(media_path.name + EXIFTOOL_BACKUP_SUFFIX)


def renamed_backup_path(media_path: Path) -> Path:
    """Rename target keeping the real extension: ``IMG_original.jpg``."""
    return media_path.with_name(f"{media_path.stem}{EXIFTOOL_BACKUP_SUFFIX}{media_path.suffix}")


def apply_backup_policy(media_path: Path, policy: str) -> str:
    """
    Handle exiftool's backup artifact after a successful in-place write.

    Args:
        media_path: The media file that was written in place
        policy: 'keep', 'delete' or 'rename'

    Returns:
        Note for the report ("" when nothing noteworthy happened)
    """
    backup = backup_path_for(media_path)
    if policy == "keep":
        return ""
    if not backup.exists():
        logger.debug(f"No backup to handle: {{'media': {str(media_path)!r}}}")
        return ""

    try:
        if policy == "rename":
            target = renamed_backup_path(media_path)
            if not target.exists():
                backup.rename(target)
                return f"backup renamed to {target.name}"
            backup.unlink()
            return f"backup deleted ({target.name} already exists)"

        backup.unlink()
        return "backup deleted"
    except OSError as e:
        logger.warning(
            f"Backup handling failed: {{'backup': {str(backup)!r}, 'policy': {policy!r}, "
            f"'error_category': {classify_error(e)!r}, 'error': {str(e)!r}}}"
        )
        return f"backup {policy} failed: {e}"


def _join_notes(*notes: str) -> str:
    return "; ".join(note for note in notes if note)


class ExecutionCoordinator:
    """Dispatches work items to exiftool and collects their results."""

    def __init__(
        self,
        config: ExecutionConfig,
        runner: ExifToolRunner | None = None,
        progress_interval: int = 100,
    ) -> None:
        self.config = config
        self.runner = runner or ExifToolRunner(config.exiftool_path, config.tool_timeout_seconds)
        self.progress_interval = progress_interval

    def execute_item(self, item: WorkItem) -> ExecutionResult:
        """Process one work item end to end. Never raises."""
        try:
            return self._execute(item)
        except Exception as e:
            logger.error(f"Unexpected failure processing {item.media_path}: {e}", exc_info=True)
            return ExecutionResult(
                item=item,
                outcome=Outcome.EXCEPTION,
                diagnostic=f"{classify_error(e)}: {e}",
            )

    def _execute(self, item: WorkItem) -> ExecutionResult:
        if item.destination is not None:
            try:
                item.destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(item.media_path, item.destination)
            except OSError as e:
                error = CopyFailedError(
                    f"cannot copy to {item.destination}: {e}",
                    source=str(item.media_path),
                    destination=str(item.destination),
                )
                return ExecutionResult(
                    item=item,
                    outcome=Outcome.COPY_FAILED,
                    diagnostic=f"{classify_error(error)}: {error.message}",
                )

        overwrite = item.destination is not None or self.config.no_backup

        try:
            output = self.runner.write(item.target_path, item.tag_args, overwrite)
        except (OSError, subprocess.SubprocessError) as e:
            # Destination copy, if any, stays in place without metadata
            return ExecutionResult(
                item=item,
                outcome=Outcome.EXCEPTION,
                diagnostic=f"{classify_error(e)}: {e}",
            )

        outcome = classify_outcome(output)
        diagnostic = "" if outcome is Outcome.SUCCESS else output.diagnostic

        if outcome.is_success and item.destination is None and not self.config.no_backup:
            diagnostic = _join_notes(diagnostic, apply_backup_policy(item.media_path, self.config.backup_policy))

        return ExecutionResult(
            item=item,
            outcome=outcome,
            exit_status=output.returncode,
            diagnostic=diagnostic,
        )

    def run(self, items: Sequence[WorkItem]) -> List[ExecutionResult]:
        """
        Execute all work items.

        Returns:
            One ExecutionResult per item, in completion order
        """
        if not items:
            return []

        progress = ProgressTracker(len(items), log_interval=self.progress_interval)
        workers = min(self.config.workers, len(items))
        logger.info(f"Executing work items: {{'items': {len(items)}, 'workers': {workers}}}")

        if workers <= 1:
            results = []
            for item in items:
                result = self.execute_item(item)
                self._record(result, results, progress)
        else:
            results = self._run_parallel(items, workers, progress)

        progress.log_final_summary()
        return results

    def _run_parallel(
        self,
        items: Sequence[WorkItem],
        workers: int,
        progress: ProgressTracker,
    ) -> List[ExecutionResult]:
        work_queue: Queue = Queue()
        results_queue: Queue = Queue()

        for item in items:
            work_queue.put(item)
        for _ in range(workers):
            work_queue.put(None)

        threads = [
            threading.Thread(
                target=worker_thread_main,
                args=(thread_id, work_queue, results_queue, self.execute_item),
                name=f"metafix-worker-{thread_id}",
                daemon=True,
            )
            for thread_id in range(workers)
        ]
        for thread in threads:
            thread.start()

        results: List[ExecutionResult] = []
        while len(results) < len(items):
            try:
                result = results_queue.get(timeout=0.5)
            except Empty:
                if not any(thread.is_alive() for thread in threads):
                    break
                continue
            self._record(result, results, progress)

        # Workers may have exited between the last get() and the liveness check
        while len(results) < len(items):
            try:
                self._record(results_queue.get_nowait(), results, progress)
            except Empty:
                break

        for thread in threads:
            thread.join()

        if len(results) < len(items):
            finished = {id(result.item) for result in results}
            for item in items:
                if id(item) not in finished:
                    lost = ExecutionResult(
                        item=item,
                        outcome=Outcome.EXCEPTION,
                        diagnostic="worker stopped before processing item",
                    )
                    self._record(lost, results, progress)

        return results

    def _record(
        self,
        result: ExecutionResult,
        results: List[ExecutionResult],
        progress: ProgressTracker,
    ) -> None:
        results.append(result)
        log_result(result)
        progress.increment()


def log_result(result: ExecutionResult) -> None:
    """Log one line per finished work item."""
    item = result.item
    payload = (
        f"{{'sidecar': {str(item.sidecar_path)!r}, 'target': {str(item.target_path)!r}, "
        f"'strategy': {item.strategy.label!r}, 'outcome': {result.outcome.value!r}, "
        f"'exit_status': {result.exit_status}, 'note': {_join_notes(item.extension_note, result.diagnostic)!r}}}"
    )
    if result.outcome is Outcome.SUCCESS:
        logger.info(f"Restored: {payload}")
    elif result.outcome is Outcome.SUCCESS_WITH_WARNING:
        logger.warning(f"Restored with warnings: {payload}")
    else:
        logger.error(f"Restore failed: {payload}")
