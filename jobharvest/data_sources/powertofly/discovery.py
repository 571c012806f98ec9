"""Discovery - listing pages, search API and sitemaps feeding one candidate set

Every strategy exposes next_batch(cursor, state) -> (urls, next_cursor);
a next_cursor of None means the strategy is done. The engine runs the
strategies in order until the quota is met.

Known false-stop risk: a page that yields zero new items is read as
"pagination exhausted", so a single transiently empty page ends a listing
walk (and counts toward abandoning a search convention).
"""
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from jobharvest.config.crawler_config import (
    LISTING_URL, SEARCH_ENDPOINT, SITEMAP_INDEX_URL, DETAIL_BASE,
    SEARCH_PAGE_SIZE, SEARCH_STALL_LIMIT, MAX_RETRIES, RETRY_DELAY,
)
from jobharvest.config.input_config import ScrapeInput
from jobharvest.config.parser_config import DETAIL_PATH_PATTERN, SITEMAP_CHILD_KEYWORD
from .models import DiscoveryState
from .parser import canonical_url, parse_listing_links, parse_search_response, parse_sitemap_locs
from .scraper import FetchError, FetchResponse, fetch_with_retry

logger = logging.getLogger(__name__)


class DiscoveryExhaustedError(Exception):
    """No candidate was discovered by any strategy"""
    pass


class DiscoveryStrategy(ABC):
    """One way of producing candidate detail URLs"""

    name = "strategy"

    def __init__(self, fetcher, options: ScrapeInput,
                 max_tries: int = MAX_RETRIES, retry_delay: float = RETRY_DELAY):
        self.fetcher = fetcher
        self.options = options
        self.max_tries = max_tries
        self.retry_delay = retry_delay

    def initial_cursor(self) -> Any:
        return 0

    @abstractmethod
    async def next_batch(self, cursor: Any, state: DiscoveryState) -> Tuple[List[str], Optional[Any]]:
        """Fetch one unit of work; return its URLs and the next cursor (None = done)"""
        pass

    async def _fetch(self, url: str, params: Optional[Dict[str, Any]] = None) -> FetchResponse:
        return await fetch_with_retry(
            self.fetcher, url, params=params,
            max_tries=self.max_tries, delay_seconds=self.retry_delay,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"


class ListingStrategy(DiscoveryStrategy):
    """Walk the paginated listing pages and scrape detail links"""

    name = "listing"

    def __init__(self, fetcher, options: ScrapeInput, listing_url: str = LISTING_URL, **kwargs):
        super().__init__(fetcher, options, **kwargs)
        self.listing_url = listing_url

    def initial_cursor(self) -> int:
        return 1

    def _build_params(self, page: int) -> Dict[str, Any]:
        params = {}
        if self.options.keyword:
            params['keywords'] = self.options.keyword
        if self.options.location:
            params['location'] = self.options.location
        if self.options.category:
            params['category'] = self.options.category
        if page > 1:
            params['page'] = page
        return params

    async def next_batch(self, page: int, state: DiscoveryState) -> Tuple[List[str], Optional[int]]:
        try:
            response = await self._fetch(self.listing_url, self._build_params(page))
        except FetchError as e:
            logger.error(f"Listing page {page} failed: {e}")
            return [], None

        links = parse_listing_links(response.body)
        fresh = state.count_new(links)
        logger.info(f"Listing page {page}: {len(links)} links, +{fresh} new (total {len(state) + fresh})")

        if fresh == 0 or page >= self.options.max_pages:
            return links, None
        return links, page + 1


@dataclass(frozen=True)
class PaginationConvention:
    """How the search API is asked for one page"""
    index_param: str
    size_param: str
    page_based: bool

    def position(self, page: int, size: int) -> int:
        """Value of index_param for the zero-based page number"""
        return page + 1 if self.page_based else page * size

    def __str__(self) -> str:
        return f"{self.index_param}+{self.size_param}"


SEARCH_CONVENTIONS = [
    PaginationConvention('page', 'per_page', page_based=True),
    PaginationConvention('offset', 'limit', page_based=False),
    PaginationConvention('from', 'size', page_based=False),
]


@dataclass(frozen=True)
class SearchCursor:
    convention: int = 0
    page: int = 0
    stalls: int = 0


class SearchApiStrategy(DiscoveryStrategy):
    """Page through the JSON search API, falling back across pagination conventions"""

    name = "search_api"

    def __init__(self, fetcher, options: ScrapeInput, endpoint: str = SEARCH_ENDPOINT,
                 conventions: Optional[List[PaginationConvention]] = None, **kwargs):
        super().__init__(fetcher, options, **kwargs)
        self.endpoint = endpoint
        self.conventions = conventions or SEARCH_CONVENTIONS
        self.page_size = min(SEARCH_PAGE_SIZE, options.results_wanted)
        self.total: Optional[int] = None

    def initial_cursor(self) -> SearchCursor:
        return SearchCursor()

    def _build_params(self, cursor: SearchCursor) -> Dict[str, Any]:
        convention = self.conventions[cursor.convention]
        params = {'filters[published]': 'true'}
        if self.options.keyword:
            params['keywords'] = self.options.keyword
        if self.options.location:
            params['location'] = self.options.location
        if self.options.category:
            params['category'] = self.options.category
        if self.options.sort_by_published:
            params['sort_by_published'] = 'True'
        params[convention.index_param] = convention.position(cursor.page, self.page_size)
        params[convention.size_param] = self.page_size
        return params

    def _next_convention(self, cursor: SearchCursor) -> Optional[SearchCursor]:
        logger.info(f"Abandoning search convention {self.conventions[cursor.convention]}")
        if cursor.convention + 1 < len(self.conventions):
            return SearchCursor(convention=cursor.convention + 1)
        return None

    async def next_batch(self, cursor: SearchCursor, state: DiscoveryState) -> Tuple[List[str], Optional[SearchCursor]]:
        convention = self.conventions[cursor.convention]
        try:
            response = await self._fetch(self.endpoint, self._build_params(cursor))
        except FetchError as e:
            logger.error(f"Search page {cursor.page + 1} ({convention}) failed: {e}")
            return [], self._next_convention(cursor)

        ids, total = parse_search_response(response.body)
        if total is not None:
            self.total = total
        urls = [f"{DETAIL_BASE}{job_id}" for job_id in ids]
        fresh = state.count_new(urls)
        logger.info(
            f"Search page {cursor.page + 1} ({convention}): fetched {len(ids)} rows, "
            f"+{fresh} new IDs (total {len(state) + fresh})"
        )

        stalls = 0 if fresh else cursor.stalls + 1
        if stalls >= SEARCH_STALL_LIMIT:
            return urls, self._next_convention(cursor)
        if cursor.page + 1 >= self.options.max_pages:
            return urls, None
        return urls, SearchCursor(cursor.convention, cursor.page + 1, stalls)


class SitemapStrategy(DiscoveryStrategy):
    """Fallback: read job sitemaps for detail URLs"""

    name = "sitemap"

    def __init__(self, fetcher, options: ScrapeInput, index_url: str = SITEMAP_INDEX_URL, **kwargs):
        super().__init__(fetcher, options, **kwargs)
        self.index_url = index_url
        self.children: List[str] = []
        self.target = 0
        self.gathered = 0

    def initial_cursor(self) -> int:
        return -1

    def _collect(self, xml: str) -> List[str]:
        """Detail URLs of one sitemap, capped at the remaining target"""
        urls = [
            canonical_url(loc) for loc in parse_sitemap_locs(xml)
            if re.search(DETAIL_PATH_PATTERN, loc)
        ]
        urls = urls[:max(0, self.target - self.gathered)]
        self.gathered += len(urls)
        return urls

    async def _load_index(self, state: DiscoveryState) -> Tuple[List[str], Optional[int]]:
        # Doubled to absorb de-duplication loss
        self.target = state.remaining * 2
        self.gathered = 0
        try:
            response = await self._fetch(self.index_url)
        except FetchError as e:
            logger.error(f"Sitemap index failed: {e}")
            return [], None

        if '<urlset' in response.body:
            return self._collect(response.body), None

        self.children = [
            loc for loc in parse_sitemap_locs(response.body)
            if SITEMAP_CHILD_KEYWORD in loc.lower()
        ]
        logger.info(f"Sitemap index: {len(self.children)} job sitemaps, target {self.target} candidates")
        return [], 0 if self.children else None

    async def next_batch(self, cursor: int, state: DiscoveryState) -> Tuple[List[str], Optional[int]]:
        if cursor < 0:
            return await self._load_index(state)

        child = self.children[cursor]
        try:
            response = await self._fetch(child)
            urls = self._collect(response.body)
        except FetchError as e:
            logger.warning(f"Sitemap {child} failed: {e}")
            urls = []
        logger.info(f"Sitemap {child}: +{len(urls)} candidates ({self.gathered}/{self.target})")

        if cursor + 1 >= len(self.children) or self.gathered >= self.target:
            return urls, None
        return urls, cursor + 1


def build_strategies(fetcher, options: ScrapeInput, **kwargs) -> List[DiscoveryStrategy]:
    """Default strategy order: listing pages, search API, sitemap"""
    return [
        ListingStrategy(fetcher, options, **kwargs),
        SearchApiStrategy(fetcher, options, **kwargs),
        SitemapStrategy(fetcher, options, **kwargs),
    ]


class DiscoveryEngine:
    """Run strategies in order until the state holds `quota` candidates"""

    def __init__(self, strategies: List[DiscoveryStrategy], state: DiscoveryState):
        self.strategies = strategies
        self.state = state

    async def _run_strategy(self, strategy: DiscoveryStrategy) -> int:
        gained = 0
        cursor = strategy.initial_cursor()
        while cursor is not None and not self.state.is_full:
            self.state.cursor = {'strategy': strategy.name, 'position': cursor}
            urls, cursor = await strategy.next_batch(cursor, self.state)
            gained += self.state.add_many(urls)
        return gained

    async def run(self) -> List[str]:
        """Discover candidates; raises DiscoveryExhaustedError if none are found"""
        for strategy in self.strategies:
            if self.state.is_full:
                break
            try:
                gained = await self._run_strategy(strategy)
            except Exception as e:
                logger.error(f"Discovery strategy {strategy.name} crashed: {e}")
                continue
            logger.info(f"Strategy {strategy.name}: +{gained} new (total {len(self.state)}/{self.state.quota})")

        urls = self.state.snapshot()
        if not urls:
            raise DiscoveryExhaustedError("No job candidates discovered by any strategy")
        logger.info(f"Discovery finished with {len(urls)} candidates")
        return urls
