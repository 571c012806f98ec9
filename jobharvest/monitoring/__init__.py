"""Monitoring module - Run metrics."""

from .run_metrics import RunMetrics, track_run

__all__ = ['RunMetrics', 'track_run']
