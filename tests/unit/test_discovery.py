"""Unit tests for candidate discovery."""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from jobharvest.config import ScrapeInput
from jobharvest.config.crawler_config import (
    LISTING_URL, SEARCH_ENDPOINT, SITEMAP_INDEX_URL, DETAIL_BASE
)
from jobharvest.data_sources.powertofly.discovery import (
    DiscoveryEngine, DiscoveryExhaustedError, ListingStrategy, SearchApiStrategy,
    SitemapStrategy, build_strategies,
)
from jobharvest.data_sources.powertofly.models import DiscoveryState
from conftest import FakeFetcher, html_response, json_response, listing_page


def options(**kwargs):
    return ScrapeInput.from_dict(kwargs)


def detail(job_id):
    return f"{DETAIL_BASE}{job_id}"


class TestDiscoveryState:
    """Tests for DiscoveryState."""

    def test_dedupes_by_job_id(self):
        """Should keep one entry per job id, first seen wins."""
        state = DiscoveryState(quota=10)
        assert state.add(detail(1)) is True
        assert state.add(detail(1) + "/") is False
        assert state.snapshot() == [detail(1)]

    def test_dedupe_off_keeps_repeats(self):
        """Should append repeats but still report them as not new."""
        state = DiscoveryState(quota=10, dedupe=False)
        state.add(detail(1))
        assert state.add(detail(1)) is False
        assert len(state) == 2
        assert state.count_new([detail(1)]) == 0

    def test_snapshot_respects_quota(self):
        """Should return at most quota entries in insertion order."""
        state = DiscoveryState(quota=2)
        state.add_many([detail(3), detail(1), detail(2)])
        assert state.snapshot() == [detail(3), detail(1)]
        assert state.is_full

    def test_seed_counts(self):
        """Should keep a seeded URL and count it toward the quota."""
        state = DiscoveryState(quota=1)
        state.seed(detail(9))
        assert state.is_full
        assert state.snapshot() == [detail(9)]
        assert state.count_new([detail(9)]) == 0
        assert state.remaining == 0


class TestListingStrategy:
    """Tests for ListingStrategy."""

    @pytest.mark.asyncio
    async def test_first_page_has_no_page_param(self):
        """Should request page 1 without a page parameter."""
        fetcher = FakeFetcher({LISTING_URL: html_response(listing_page([1, 2]))})
        strategy = ListingStrategy(fetcher, options(keyword="python", max_pages=5), retry_delay=0)
        urls, cursor = await strategy.next_batch(1, DiscoveryState(quota=10))
        assert urls == [detail(1), detail(2)]
        assert cursor == 2
        assert fetcher.calls[0][1] == {'keywords': "python"}

    @pytest.mark.asyncio
    async def test_later_pages_send_page_param(self):
        """Should send the page number after the first page."""
        fetcher = FakeFetcher({LISTING_URL: html_response(listing_page([3]))})
        strategy = ListingStrategy(fetcher, options(max_pages=5), retry_delay=0)
        await strategy.next_batch(2, DiscoveryState(quota=10))
        assert fetcher.calls[0][1] == {'page': 2}

    @pytest.mark.asyncio
    async def test_stops_at_max_pages(self):
        """Should end after max_pages."""
        fetcher = FakeFetcher({LISTING_URL: html_response(listing_page([1]))})
        strategy = ListingStrategy(fetcher, options(max_pages=1), retry_delay=0)
        _, cursor = await strategy.next_batch(1, DiscoveryState(quota=10))
        assert cursor is None

    @pytest.mark.asyncio
    async def test_stops_when_nothing_new(self):
        """Should end when a page yields no new ids."""
        state = DiscoveryState(quota=10)
        state.add(detail(1))
        fetcher = FakeFetcher({LISTING_URL: html_response(listing_page([1]))})
        strategy = ListingStrategy(fetcher, options(max_pages=5), retry_delay=0)
        _, cursor = await strategy.next_batch(2, state)
        assert cursor is None

    @pytest.mark.asyncio
    async def test_fetch_failure_ends_strategy(self):
        """Should end quietly on a failed listing page."""
        strategy = ListingStrategy(FakeFetcher(), options(), retry_delay=0)
        assert await strategy.next_batch(1, DiscoveryState(quota=10)) == ([], None)


class TestSearchApiStrategy:
    """Tests for SearchApiStrategy."""

    @pytest.mark.asyncio
    async def test_request_parameters(self):
        """Should send filters and page-based pagination first."""
        fetcher = FakeFetcher({SEARCH_ENDPOINT: json_response({"jobs": [{"id": 5}], "total": 12})})
        strategy = SearchApiStrategy(
            fetcher, options(keyword="data", location="Remote", results_wanted=20), retry_delay=0
        )
        urls, _ = await strategy.next_batch(strategy.initial_cursor(), DiscoveryState(quota=20))

        params = fetcher.calls[0][1]
        assert params['filters[published]'] == 'true'
        assert params['keywords'] == "data"
        assert params['location'] == "Remote"
        assert params['sort_by_published'] == 'True'
        assert params['page'] == 1
        assert params['per_page'] == 20
        assert urls == [detail(5)]
        assert strategy.total == 12

    @pytest.mark.asyncio
    async def test_page_size_capped_at_fifty(self):
        """Should request at most 50 rows per page."""
        strategy = SearchApiStrategy(FakeFetcher(), options(results_wanted=500))
        assert strategy.page_size == 50

    @pytest.mark.asyncio
    async def test_stalls_switch_convention(self):
        """Should abandon a convention after two pages without new ids."""
        fetcher = FakeFetcher({SEARCH_ENDPOINT: json_response({"jobs": [{"id": 1}]})})
        strategy = SearchApiStrategy(fetcher, options(results_wanted=10), retry_delay=0)
        engine = DiscoveryEngine([strategy], DiscoveryState(quota=10))
        await engine.run()

        used = [next(k for k in ('page', 'offset', 'from') if k in p) for _, p in fetcher.calls]
        assert used == ['page', 'page', 'page', 'offset', 'offset', 'from', 'from']

    @pytest.mark.asyncio
    async def test_offset_positions(self):
        """Should advance offset by the page size."""
        pages = iter([[1, 2], [3, 4], [5, 6]])

        def respond(params):
            if 'page' in params:
                return html_response("", 500)
            return json_response({"jobs": [{"id": i} for i in next(pages, [])]})

        fetcher = FakeFetcher({SEARCH_ENDPOINT: respond})
        strategy = SearchApiStrategy(fetcher, options(results_wanted=6), max_tries=1, retry_delay=0)
        state = DiscoveryState(quota=6)
        await DiscoveryEngine([strategy], state).run()

        offsets = [p['offset'] for _, p in fetcher.calls if 'offset' in p]
        assert offsets == [0, 6, 12]
        assert len(state) == 6

    @pytest.mark.asyncio
    async def test_failures_walk_every_convention(self):
        """Should try each convention once when every request fails."""
        fetcher = FakeFetcher({SEARCH_ENDPOINT: html_response("", 404)})
        strategy = SearchApiStrategy(fetcher, options(), retry_delay=0)
        with pytest.raises(DiscoveryExhaustedError):
            await DiscoveryEngine([strategy], DiscoveryState(quota=5)).run()
        assert len(fetcher.calls) == 3


class TestSitemapStrategy:
    """Tests for SitemapStrategy."""

    INDEX = """<sitemapindex>
      <sitemap><loc>https://powertofly.com/sitemaps/jobs-1.xml</loc></sitemap>
      <sitemap><loc>https://powertofly.com/sitemaps/pages.xml</loc></sitemap>
    </sitemapindex>"""

    @staticmethod
    def urlset(ids):
        urls = "".join(f"<url><loc>{detail(i)}?ref=sm</loc></url>" for i in ids)
        return f"<urlset>{urls}<url><loc>https://powertofly.com/about</loc></url></urlset>"

    @pytest.mark.asyncio
    async def test_reads_job_child_sitemaps(self):
        """Should follow only job sitemaps and keep detail URLs."""
        fetcher = FakeFetcher({
            SITEMAP_INDEX_URL: html_response(self.INDEX),
            "https://powertofly.com/sitemaps/jobs-1.xml": html_response(self.urlset([1, 2, 3])),
        })
        state = DiscoveryState(quota=5)
        urls = await DiscoveryEngine([SitemapStrategy(fetcher, options(), retry_delay=0)], state).run()

        assert urls == [detail(1), detail(2), detail(3)]
        assert "https://powertofly.com/sitemaps/pages.xml" not in fetcher.urls_called()

    @pytest.mark.asyncio
    async def test_candidates_capped_at_twice_remaining(self):
        """Should gather at most twice the remaining quota."""
        fetcher = FakeFetcher({
            SITEMAP_INDEX_URL: html_response(self.INDEX),
            "https://powertofly.com/sitemaps/jobs-1.xml": html_response(self.urlset(range(1, 11))),
        })
        strategy = SitemapStrategy(fetcher, options(), retry_delay=0)
        state = DiscoveryState(quota=2)
        await strategy.next_batch(-1, state)
        urls, cursor = await strategy.next_batch(0, state)
        assert len(urls) == 4
        assert cursor is None

    @pytest.mark.asyncio
    async def test_urlset_at_index(self):
        """Should read a plain urlset served at the index URL."""
        fetcher = FakeFetcher({SITEMAP_INDEX_URL: html_response(self.urlset([7]))})
        strategy = SitemapStrategy(fetcher, options(), retry_delay=0)
        urls, cursor = await strategy.next_batch(-1, DiscoveryState(quota=3))
        assert urls == [detail(7)]
        assert cursor is None


class TestDiscoveryEngine:
    """Tests for DiscoveryEngine."""

    @pytest.mark.asyncio
    async def test_falls_back_to_search(self):
        """Should move to the search API when listing yields nothing."""
        fetcher = FakeFetcher({
            LISTING_URL: html_response("<html><body>Loading...</body></html>"),
            SEARCH_ENDPOINT: json_response({"jobs": [{"id": 1}, {"id": 2}], "total": 2}),
        })
        state = DiscoveryState(quota=2)
        urls = await DiscoveryEngine(
            build_strategies(fetcher, options(results_wanted=2), retry_delay=0), state
        ).run()
        assert urls == [detail(1), detail(2)]
        assert SITEMAP_INDEX_URL not in fetcher.urls_called()

    @pytest.mark.asyncio
    async def test_stops_when_full(self):
        """Should not run later strategies once the quota is met."""
        fetcher = FakeFetcher({LISTING_URL: html_response(listing_page([1, 2, 3]))})
        urls = await DiscoveryEngine(
            build_strategies(fetcher, options(results_wanted=2), retry_delay=0),
            DiscoveryState(quota=2),
        ).run()
        assert urls == [detail(1), detail(2)]
        assert fetcher.urls_called() == [LISTING_URL]

    @pytest.mark.asyncio
    async def test_crashing_strategy_is_skipped(self):
        """Should continue with the next strategy when one crashes."""
        class Broken(ListingStrategy):
            async def next_batch(self, cursor, state):
                raise RuntimeError("boom")

        fetcher = FakeFetcher({SEARCH_ENDPOINT: json_response({"jobs": [{"id": 4}]})})
        opts = options(results_wanted=1)
        urls = await DiscoveryEngine(
            [Broken(fetcher, opts), SearchApiStrategy(fetcher, opts, retry_delay=0)],
            DiscoveryState(quota=1),
        ).run()
        assert urls == [detail(4)]

    @pytest.mark.asyncio
    async def test_exhausted_raises(self):
        """Should raise when no strategy finds anything."""
        fetcher = FakeFetcher()
        with pytest.raises(DiscoveryExhaustedError):
            await DiscoveryEngine(
                build_strategies(fetcher, options(), retry_delay=0), DiscoveryState(quota=5)
            ).run()

    @pytest.mark.asyncio
    async def test_records_cursor(self):
        """Should expose the current strategy and position."""
        fetcher = FakeFetcher({LISTING_URL: html_response(listing_page([1]))})
        state = DiscoveryState(quota=1)
        await DiscoveryEngine([ListingStrategy(fetcher, options(), retry_delay=0)], state).run()
        assert state.cursor == {'strategy': 'listing', 'position': 1}


class FixedStrategy(ListingStrategy):
    """Yields one fixed batch of ids"""

    def __init__(self, ids, name):
        super().__init__(FakeFetcher(), options())
        self.ids = ids
        self.name = name

    async def next_batch(self, cursor, state):
        return [detail(i) for i in self.ids], None


class TestDiscoveryUnion:
    """Candidate set across overlapping strategies."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quota", [2, 4, 5, 10])
    async def test_union_capped_at_quota(self, quota):
        """Should yield the id union in first-seen order, capped at quota."""
        first, second = [3, 1, 4], [1, 5, 9, 3]
        state = DiscoveryState(quota=quota)
        urls = await DiscoveryEngine(
            [FixedStrategy(first, "a"), FixedStrategy(second, "b")], state
        ).run()

        union = [3, 1, 4, 5, 9]
        assert len(urls) == min(quota, len(set(first) | set(second)))
        assert urls == [detail(i) for i in union][:quota]
