"""Tests for progress tracking."""

import logging

from takeout_metafix.restorer.progress import ProgressTracker, format_duration


class TestProgressTracker:
    """Tests for ProgressTracker."""
    
    def test_counts(self):
        tracker = ProgressTracker(total_items=10, log_interval=5)
        tracker.increment()
        tracker.increment(2)
        
        progress = tracker.get_progress()
        assert progress["items_done"] == 3
        assert progress["remaining_items"] == 7
        assert progress["percentage"] == 30.0
    
    def test_logs_at_interval(self, caplog):
        tracker = ProgressTracker(total_items=4, log_interval=2)
        with caplog.at_level(logging.INFO, logger="takeout_metafix.restorer.progress"):
            for _ in range(4):
                tracker.increment()
        
        assert sum(r.getMessage().startswith("Progress:") for r in caplog.records) == 2
    
    def test_zero_total(self):
        assert ProgressTracker(total_items=0).get_progress()["percentage"] == 0.0


class TestFormatDuration:
    def test_values(self):
        assert format_duration(0) == "0s"
        assert format_duration(59) == "59s"
        assert format_duration(3600 + 15 * 60 + 30) == "1h 15m 30s"
        assert format_duration(120) == "2m"
