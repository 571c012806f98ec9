"""Run Metrics - Track harvest run counters and duration."""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class RunMetrics:
    """Harvest run metrics."""
    run_id: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_seconds: float = 0.0
    discovered: int = 0
    extracted: int = 0
    stubs: int = 0
    dropped: int = 0
    bare: int = 0
    total_available: Optional[int] = None
    status: str = 'running'
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def saved(self) -> int:
        return self.extracted + self.stubs + self.bare

    @property
    def throughput(self) -> float:
        """Records per second."""
        if self.duration_seconds > 0:
            return self.saved / self.duration_seconds
        return 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'run_id': self.run_id,
            'status': self.status,
            'discovered': self.discovered,
            'extracted': self.extracted,
            'stubs': self.stubs,
            'dropped': self.dropped,
            'bare': self.bare,
            'saved': self.saved,
            'total_available': self.total_available,
            'duration_seconds': round(self.duration_seconds, 2),
            'error_message': self.error_message,
            'metadata': self.metadata,
        }


@contextmanager
def track_run(run_id: str = None):
    """Context manager to time a run and log its counters."""
    metrics = RunMetrics(
        run_id=run_id or datetime.now().strftime('%Y%m%d%H%M%S'),
        start_time=datetime.now()
    )
    start = time.time()

    try:
        yield metrics
        if metrics.status == 'running':
            metrics.status = 'success'
    except Exception as e:
        metrics.status = 'failed'
        metrics.error_message = str(e)
        raise
    finally:
        metrics.end_time = datetime.now()
        metrics.duration_seconds = time.time() - start
        logger.info(
            f"Run {metrics.run_id} {metrics.status}: discovered {metrics.discovered}, "
            f"saved {metrics.saved} ({metrics.stubs} stubs) in {metrics.duration_seconds:.2f}s. "
            f"Total available (search): {metrics.total_available if metrics.total_available is not None else 'unknown'}"
        )
