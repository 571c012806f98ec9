"""PowerToFly data model - records, discovery state and per-URL outcomes"""
import threading
from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, Dict, List, Optional

from .normalizer import extract_job_id

# Partial accumulator keyed like JobRecord; a missing key means "not yet determined"
RawJobData = Dict[str, str]


@dataclass
class JobRecord:
    """One output record. Content fields are None when unknown, never ''."""
    job_id: Optional[str]
    url: Optional[str]
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    is_remote: Optional[bool] = None
    remote_type: Optional[str] = None
    region: Optional[str] = None
    salary: Optional[str] = None
    job_type: Optional[str] = None
    date_posted: Optional[str] = None
    description_html: Optional[str] = None
    description_text: Optional[str] = None

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, str) and not value.strip():
                setattr(self, f.name, None)

    @classmethod
    def stub(cls, url: str) -> "JobRecord":
        """Minimal record keeping id/url accounting when details are missing"""
        return cls(job_id=extract_job_id(url), url=url)

    @property
    def is_stub(self) -> bool:
        return all(
            getattr(self, name) is None
            for name in FIELD_NAMES if name not in ("job_id", "url")
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


FIELD_NAMES = [f.name for f in fields(JobRecord)]


class UrlState(str, Enum):
    """Per-URL lifecycle in the detail phase"""
    PENDING = "pending"
    FETCHED = "fetched"
    EXTRACTED = "extracted"
    FAILED = "failed"
    SKIPPED = "skipped"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    STUB = "stub"
    DROPPED = "dropped"


@dataclass
class FetchOutcome:
    """Result of processing one detail URL"""
    status: OutcomeStatus
    url: str
    record: Optional[JobRecord] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, url: str, record: JobRecord) -> "FetchOutcome":
        return cls(OutcomeStatus.SUCCESS, url, record)

    @classmethod
    def stub(cls, url: str, error: str) -> "FetchOutcome":
        return cls(OutcomeStatus.STUB, url, JobRecord.stub(url), error)

    @classmethod
    def dropped(cls, url: str, reason: str) -> "FetchOutcome":
        return cls(OutcomeStatus.DROPPED, url, None, reason)


class SavedCounter:
    """Thread-safe counter bounded by a quota"""

    def __init__(self, quota: int):
        self.quota = quota
        self._value = 0
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        return self._value

    @property
    def reached(self) -> bool:
        return self._value >= self.quota

    def try_increment(self) -> bool:
        """Reserve one slot; False once the quota is used up"""
        with self._lock:
            if self._value >= self.quota:
                return False
            self._value += 1
            return True

    def release(self) -> None:
        """Give back a slot whose record was never written"""
        with self._lock:
            if self._value > 0:
                self._value -= 1


class DiscoveryState:
    """Insertion-ordered candidate URLs keyed by canonical job id.

    With dedupe disabled, repeated ids are appended; novelty is still
    measured against seen ids so strategies can detect stalls.
    """

    def __init__(self, quota: int, dedupe: bool = True):
        self.quota = quota
        self.dedupe = dedupe
        self.cursor: Dict[str, Any] = {}
        self._entries: List[str] = []
        self._seen: Dict[str, str] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def is_full(self) -> bool:
        return len(self._entries) >= self.quota

    @property
    def remaining(self) -> int:
        return max(0, self.quota - len(self._entries))

    def count_new(self, urls: List[str]) -> int:
        """Number of distinct, not yet seen job ids among urls"""
        ids = {extract_job_id(u) for u in urls}
        return len([i for i in ids if i not in self._seen])

    def add(self, url: str) -> bool:
        """Insert a URL; returns True when its job id was new"""
        job_id = extract_job_id(url)
        with self._lock:
            is_new = job_id not in self._seen
            if is_new:
                self._seen[job_id] = url
                self._entries.append(url)
            elif not self.dedupe:
                self._entries.append(url)
            return is_new

    def add_many(self, urls: List[str]) -> int:
        return sum(1 for u in urls if self.add(u))

    def seed(self, url: str) -> None:
        """Seed a directly supplied detail URL; always kept and counted"""
        with self._lock:
            self._seen.setdefault(extract_job_id(url), url)
            self._entries.append(url)

    def snapshot(self) -> List[str]:
        """First `quota` entries in first-seen order"""
        with self._lock:
            return list(self._entries[:self.quota])
