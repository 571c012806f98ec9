"""Harvest Pipeline - discover candidates, fetch details, emit records"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Union

from jobharvest.config import ScrapeInput
from jobharvest.config.crawler_config import CONCURRENCY, MAX_RETRIES, RETRY_DELAY
from jobharvest.data_sources.powertofly import (
    DetailOrchestrator, DiscoveryEngine, DiscoveryExhaustedError, DiscoveryState,
    DiscoveryStrategy, HttpFetcher, JobRecord, OutcomeStatus,
    build_cookie_header, build_headers, build_strategies,
)
from jobharvest.monitoring import RunMetrics, track_run
from jobharvest.quality import (
    ContentRuleValidator, QualityGate, RecordValidator, ValidationHardFailError,
)
from jobharvest.storage import MemorySink

logger = logging.getLogger(__name__)


def _validate(records: List[JobRecord], metrics: RunMetrics) -> None:
    """Attach record quality to the run metrics; never fails the run"""
    validation = RecordValidator().validate(records)
    rules = ContentRuleValidator().validate(records)
    metrics.metadata['valid_rate'] = validation.valid_rate
    metrics.metadata['field_missing_rates'] = validation.field_missing_rates
    metrics.metadata['content_status'] = rules.status

    try:
        gate = QualityGate().evaluate(validation)
        metrics.metadata['gate'] = gate.status
    except ValidationHardFailError as e:
        logger.warning(f"Quality gate failed: {e}")
        metrics.metadata['gate'] = 'failed'


async def run_scrape(raw_input: Union[ScrapeInput, Dict[str, Any], None], sink,
                     fetcher=None,
                     strategies: Optional[List[DiscoveryStrategy]] = None,
                     concurrency: int = CONCURRENCY,
                     max_tries: int = MAX_RETRIES,
                     retry_delay: float = RETRY_DELAY,
                     run_id: str = None) -> RunMetrics:
    """Run one harvest and append every record to `sink`.

    Zero discovered candidates ends the run with status 'exhausted' and no
    records. The sink is not closed here.
    """
    options = raw_input if isinstance(raw_input, ScrapeInput) else ScrapeInput.from_dict(raw_input)

    own_fetcher = fetcher is None
    if own_fetcher:
        cookie_header = build_cookie_header(options.cookies, options.cookies_json)
        fetcher = HttpFetcher(headers=build_headers(cookie_header), proxy_urls=options.proxy_urls)

    logger.info(
        f'Search filters -> keywords: "{options.keyword}", location: "{options.location}", '
        f'category: "{options.category}" (want {options.results_wanted}, max pages {options.max_pages})'
    )

    try:
        with track_run(run_id) as metrics:
            state = DiscoveryState(quota=options.results_wanted, dedupe=options.dedupe)
            if options.seed_detail_url:
                state.seed(options.seed_detail_url)

            if strategies is None:
                strategies = build_strategies(
                    fetcher, options, max_tries=max_tries, retry_delay=retry_delay
                )

            try:
                urls = await DiscoveryEngine(strategies, state).run()
            except DiscoveryExhaustedError as e:
                logger.warning(f"{e}. Exiting.")
                metrics.status = 'exhausted'
                return metrics

            metrics.discovered = len(urls)
            metrics.total_available = next(
                (s.total for s in strategies if getattr(s, 'total', None) is not None), None
            )

            if not options.collect_details:
                logger.info(f"collectDetails=false -> pushing {len(urls)} bare results.")
                for url in urls:
                    await sink.append(JobRecord.stub(url))
                    metrics.bare += 1
                return metrics

            orchestrator = DetailOrchestrator(
                fetcher, sink, quota=options.results_wanted,
                concurrency=concurrency, max_tries=max_tries, retry_delay=retry_delay,
            )
            result = await orchestrator.run(urls)
            metrics.extracted = result.count(OutcomeStatus.SUCCESS)
            metrics.stubs = result.count(OutcomeStatus.STUB)
            metrics.dropped = result.count(OutcomeStatus.DROPPED)

            _validate(result.records, metrics)
            return metrics
    finally:
        if own_fetcher:
            await fetcher.aclose()


def harvest(raw_input: Optional[Dict[str, Any]] = None, sink=None, **kwargs) -> RunMetrics:
    """Synchronous wrapper for run_scrape (for non-async contexts)"""
    sink = sink if sink is not None else MemorySink()

    async def _run():
        try:
            return await run_scrape(raw_input, sink, **kwargs)
        finally:
            await sink.close()

    return asyncio.run(_run())
