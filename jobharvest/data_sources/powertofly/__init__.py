"""PowerToFly data source module exports"""
from .models import JobRecord, DiscoveryState, SavedCounter, FetchOutcome, OutcomeStatus, UrlState
from .normalizer import clean_text, normalize_location, extract_job_id
from .parser import extract_jsonld, fill_from_selectors, assemble_record, records_to_dataframe
from .scraper import (
    HttpFetcher, FetchResponse, FetchError, TransientFetchError, BlockDetectedError,
    fetch_with_retry, build_cookie_header, build_headers, detect_block,
)
from .discovery import (
    DiscoveryEngine, DiscoveryExhaustedError, DiscoveryStrategy,
    ListingStrategy, SearchApiStrategy, SitemapStrategy, build_strategies,
)
from .orchestrator import DetailOrchestrator, DetailRunResult

__all__ = [
    'JobRecord', 'DiscoveryState', 'SavedCounter', 'FetchOutcome', 'OutcomeStatus', 'UrlState',
    'clean_text', 'normalize_location', 'extract_job_id',
    'extract_jsonld', 'fill_from_selectors', 'assemble_record', 'records_to_dataframe',
    'HttpFetcher', 'FetchResponse', 'FetchError', 'TransientFetchError', 'BlockDetectedError',
    'fetch_with_retry', 'build_cookie_header', 'build_headers', 'detect_block',
    'DiscoveryEngine', 'DiscoveryExhaustedError', 'DiscoveryStrategy',
    'ListingStrategy', 'SearchApiStrategy', 'SitemapStrategy', 'build_strategies',
    'DetailOrchestrator', 'DetailRunResult',
]
