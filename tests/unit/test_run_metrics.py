"""Unit tests for run metrics tracking."""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from jobharvest.monitoring import RunMetrics, track_run


class TestRunMetrics:
    """Tests for RunMetrics."""

    def test_saved_includes_stubs_and_bare(self):
        """Should count extracted, stub and bare records as saved."""
        metrics = RunMetrics(run_id="r1", extracted=3, stubs=1, bare=2, dropped=4)
        assert metrics.saved == 6
        assert metrics.to_dict()['saved'] == 6

    def test_throughput_without_duration(self):
        """Should return 0 when no time elapsed."""
        assert RunMetrics(run_id="r1", extracted=3).throughput == 0.0


class TestTrackRun:
    """Tests for track_run context manager."""

    def test_success(self):
        """Should mark a clean run as success and time it."""
        with track_run("r1") as metrics:
            metrics.extracted = 2
        assert metrics.status == 'success'
        assert metrics.end_time is not None
        assert metrics.duration_seconds >= 0

    def test_keeps_explicit_status(self):
        """Should not overwrite a status set inside the block."""
        with track_run() as metrics:
            metrics.status = 'exhausted'
        assert metrics.status == 'exhausted'
        assert metrics.run_id

    def test_failure(self):
        """Should mark the run failed and re-raise."""
        with pytest.raises(ValueError):
            with track_run("r2") as metrics:
                raise ValueError("boom")
        assert metrics.status == 'failed'
        assert metrics.error_message == "boom"
