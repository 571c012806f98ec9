"""Detail fetch orchestrator - bounded-concurrency fetch/extract/emit loop"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from jobharvest.config.crawler_config import CONCURRENCY, MAX_RETRIES, RETRY_DELAY
from .models import FetchOutcome, JobRecord, OutcomeStatus, SavedCounter, UrlState
from .parser import assemble_record
from .scraper import FetchError, TransientFetchError, fetch_with_retry

logger = logging.getLogger(__name__)


@dataclass
class DetailRunResult:
    """Outcomes and per-URL states of one detail phase"""
    outcomes: List[FetchOutcome] = field(default_factory=list)
    states: Dict[str, UrlState] = field(default_factory=dict)

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def saved(self) -> int:
        return self.count(OutcomeStatus.SUCCESS) + self.count(OutcomeStatus.STUB)

    @property
    def records(self) -> List[JobRecord]:
        return [o.record for o in self.outcomes if o.record is not None and o.status != OutcomeStatus.DROPPED]


class DetailOrchestrator:
    """Fetch detail pages concurrently, assemble records and append them to the sink.

    Pages that keep failing after the retry budget still produce a stub
    record. Once `counter` reaches its quota no new fetch is started;
    requests already in flight finish without emitting.
    """

    def __init__(self, fetcher, sink, quota: int,
                 concurrency: int = CONCURRENCY,
                 max_tries: int = MAX_RETRIES,
                 retry_delay: float = RETRY_DELAY,
                 counter: Optional[SavedCounter] = None):
        self.fetcher = fetcher
        self.sink = sink
        self.concurrency = max(1, concurrency)
        self.max_tries = max_tries
        self.retry_delay = retry_delay
        self.counter = counter or SavedCounter(quota)
        self.states: Dict[str, UrlState] = {}

    async def _emit(self, outcome: FetchOutcome) -> FetchOutcome:
        if not self.counter.try_increment():
            return FetchOutcome.dropped(outcome.url, "quota reached")
        try:
            await self.sink.append(outcome.record)
        except Exception as e:
            self.counter.release()
            self.states[outcome.url] = UrlState.FAILED
            logger.error(f"Sink rejected record for {outcome.url}, slot released: {e}")
            return FetchOutcome.dropped(outcome.url, f"sink error: {e}")
        logger.info(f"Saved {self.counter.value}/{self.counter.quota}")
        return outcome

    async def process_url(self, url: str) -> FetchOutcome:
        """PENDING -> FETCHED -> EXTRACTED | FAILED for one URL, SKIPPED once the
        quota is reached. Never raises.
        """
        self.states[url] = UrlState.PENDING
        if self.counter.reached:
            self.states[url] = UrlState.SKIPPED
            return FetchOutcome.dropped(url, "quota reached")

        try:
            response = await fetch_with_retry(
                self.fetcher, url, max_tries=self.max_tries, delay_seconds=self.retry_delay
            )
        except TransientFetchError as e:
            self.states[url] = UrlState.FAILED
            logger.warning(f"Giving up on {url} after {self.max_tries} tries, emitting stub: {e}")
            return await self._emit(FetchOutcome.stub(url, str(e)))
        except FetchError as e:
            self.states[url] = UrlState.FAILED
            logger.warning(f"Fetch failed for {url}, emitting stub: {e}")
            return await self._emit(FetchOutcome.stub(url, str(e)))

        self.states[url] = UrlState.FETCHED
        if self.counter.reached:
            self.states[url] = UrlState.SKIPPED
            return FetchOutcome.dropped(url, "quota reached")

        try:
            record = assemble_record(response.body, url)
        except Exception as e:
            self.states[url] = UrlState.FAILED
            logger.error(f"Extraction failed for {url}: {e}")
            return await self._emit(FetchOutcome.stub(url, str(e)))

        self.states[url] = UrlState.EXTRACTED
        return await self._emit(FetchOutcome.success(url, record))

    async def run(self, urls: List[str]) -> DetailRunResult:
        """Process all URLs with at most `concurrency` in flight"""
        logger.info(f"Detail scraping {len(urls)} jobs (cap {self.counter.quota}, concurrency {self.concurrency})")
        semaphore = asyncio.Semaphore(self.concurrency)

        async def process_with_limit(url):
            async with semaphore:
                return await self.process_url(url)

        results = await asyncio.gather(*(process_with_limit(u) for u in urls), return_exceptions=True)

        outcomes = []
        for url, r in zip(urls, results):
            if isinstance(r, Exception):
                logger.error(f"Unexpected error for {url}: {r}")
                self.states[url] = UrlState.FAILED
                outcomes.append(FetchOutcome.dropped(url, str(r)))
            else:
                outcomes.append(r)

        result = DetailRunResult(outcomes=outcomes, states=dict(self.states))
        logger.info(
            f"Detail phase done: {result.count(OutcomeStatus.SUCCESS)} extracted, "
            f"{result.count(OutcomeStatus.STUB)} stubs, {result.count(OutcomeStatus.DROPPED)} dropped"
        )
        return result
