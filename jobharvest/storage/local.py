"""Local sinks - newline-delimited JSON file and in-memory list"""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from jobharvest.config import OUTPUT_DIR
from jobharvest.data_sources.powertofly.models import JobRecord

logger = logging.getLogger(__name__)


def default_output_path() -> Path:
    timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
    return OUTPUT_DIR / f"powertofly_{timestamp}.jsonl"


class JsonlSink:
    """Append each record as one JSON line"""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else default_output_path()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open('a', encoding='utf-8')
        self.count = 0

    async def append(self, record: JobRecord) -> None:
        self._file.write(json.dumps(record.to_dict(), ensure_ascii=False) + "\n")
        self._file.flush()
        self.count += 1

    async def close(self) -> None:
        if not self._file.closed:
            self._file.close()
            logger.info(f"Wrote {self.count} records to {self.path}")


class MemorySink:
    """Keep records in a list"""

    def __init__(self):
        self.records: List[JobRecord] = []

    async def append(self, record: JobRecord) -> None:
        self.records.append(record)

    async def close(self) -> None:
        pass
