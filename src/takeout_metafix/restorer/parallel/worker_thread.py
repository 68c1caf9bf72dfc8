"""Worker thread for parallel restoration.

Each worker pulls WorkItems from the work queue, runs one item to
completion (copy plus one exiftool invocation) and puts the immutable
ExecutionResult on the results queue. Workers share nothing else.

Architecture:
- N worker threads (``execution.workers``)
- Work queue: WorkItem objects, one ``None`` sentinel per worker
- Results queue: ExecutionResult objects, drained by the main thread
"""

import logging
from queue import Queue
from typing import Callable

from ..errors import classify_error
from ..models import ExecutionResult, Outcome, WorkItem

logger = logging.getLogger(__name__)


def worker_thread_main(
    thread_id: int,
    work_queue: Queue,
    results_queue: Queue,
    execute: Callable[[WorkItem], ExecutionResult],
) -> None:
    """Main function for a worker thread.
    
    Args:
        thread_id: Unique identifier for this worker thread
        work_queue: Queue of WorkItem objects; ``None`` stops the worker
        results_queue: Queue receiving exactly one ExecutionResult per item
        execute: Per-item function shared with sequential mode
    """
    logger.debug(f"Worker thread {thread_id} started")
    
    processed_count = 0
    error_count = 0
    
    try:
        while True:
            item = work_queue.get()
            
            if item is None:
                logger.debug(f"Worker thread {thread_id} received shutdown sentinel")
                work_queue.task_done()
                break
            
            try:
                result = execute(item)
            except Exception as e:
                result = ExecutionResult(
                    item=item,
                    outcome=Outcome.EXCEPTION,
                    diagnostic=f"{classify_error(e)}: {e}",
                )
                logger.error(
                    f"Worker {thread_id} failed to process {item.media_path}: {e}",
                    exc_info=True
                )
            finally:
                work_queue.task_done()
            
            results_queue.put(result)
            processed_count += 1
            if not result.outcome.is_success:
                error_count += 1
    
    finally:
        logger.debug(
            f"Worker thread {thread_id} shutting down "
            f"(processed={processed_count}, errors={error_count})"
        )
