"""Progress tracking for the restore phase.

Tracks completed work items and reports rate and ETA.
"""

import logging
import time

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Tracks restore progress and calculates ETA.
    
    Logs every ``log_interval`` completed items.
    """
    
    def __init__(self, total_items: int, log_interval: int = 100):
        self.total_items = total_items
        self.log_interval = max(1, log_interval)
        
        self.items_done = 0
        self.start_time = time.time()
        self.last_log_time = self.start_time
        self.last_log_count = 0
    
    def increment(self, count: int = 1) -> None:
        """Add ``count`` completed items."""
        self.items_done += count
        
        if self.items_done % self.log_interval == 0:
            self._log_progress()
    
    def get_progress(self) -> dict:
        """Get current progress statistics.
        
        Returns:
            Dict with progress metrics
        """
        elapsed_time = time.time() - self.start_time
        rate = self.items_done / elapsed_time if elapsed_time > 0 else 0.0
        percentage = (self.items_done / self.total_items) * 100 if self.total_items > 0 else 0.0
        
        remaining = self.total_items - self.items_done
        eta_seconds = remaining / rate if rate > 0 and remaining > 0 else 0.0
        
        return {
            "total_items": self.total_items,
            "items_done": self.items_done,
            "remaining_items": remaining,
            "percentage": percentage,
            "elapsed_seconds": elapsed_time,
            "rate_items_per_sec": rate,
            "eta_seconds": eta_seconds,
        }
    
    def _log_progress(self) -> None:
        progress = self.get_progress()
        
        current_time = time.time()
        time_delta = current_time - self.last_log_time
        count_delta = self.items_done - self.last_log_count
        instant_rate = count_delta / time_delta if time_delta > 0 else 0.0
        
        logger.info(
            f"Progress: {self.items_done}/{self.total_items} "
            f"({progress['percentage']:.1f}%) - "
            f"{progress['rate_items_per_sec']:.1f} files/sec (avg), "
            f"{instant_rate:.1f} files/sec (current) - "
            f"ETA: {format_duration(progress['eta_seconds'])}"
        )
        
        self.last_log_time = current_time
        self.last_log_count = self.items_done
    
    def log_final_summary(self) -> None:
        elapsed_time = time.time() - self.start_time
        rate = self.items_done / elapsed_time if elapsed_time > 0 else 0.0
        
        logger.info(
            f"Restore complete: {self.items_done}/{self.total_items} items "
            f"in {format_duration(elapsed_time)} "
            f"({rate:.1f} files/sec average)"
        )


def format_duration(seconds: float) -> str:
    """Format seconds as human-readable time, e.g. ``"2h 15m 30s"``."""
    if seconds <= 0:
        return "0s"
    
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    
    return " ".join(parts)
