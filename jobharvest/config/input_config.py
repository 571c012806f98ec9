"""Run input - the recognized options of a harvest run"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from .crawler_config import BOARD_HOST, DEFAULT_MAX_PAGES, DEFAULT_RESULTS_WANTED
from .parser_config import DETAIL_PATH_PATTERN

logger = logging.getLogger(__name__)


def _to_int(value: Any, default: int, floor: int = 1) -> int:
    """Coerce to int with a floor; unusable values fall back to default"""
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return default
    return max(floor, number)


def _to_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def is_detail_url(url: Optional[str]) -> bool:
    """True when the URL points at a single job detail page"""
    return bool(url) and re.search(DETAIL_PATH_PATTERN, url, re.IGNORECASE) is not None


@dataclass
class ScrapeInput:
    """Options of one harvest run.

    `category` only filters discovery; it is never written to a record.
    """
    keyword: str = ""
    location: str = ""
    category: str = ""
    results_wanted: int = DEFAULT_RESULTS_WANTED
    max_pages: int = DEFAULT_MAX_PAGES
    sort_by_published: bool = True
    collect_details: bool = True
    dedupe: bool = True
    start_url: str = ""
    proxy_urls: List[str] = field(default_factory=list)
    cookies: Optional[str] = None
    cookies_json: Any = None

    @property
    def seed_detail_url(self) -> Optional[str]:
        return self.start_url if is_detail_url(self.start_url) else None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ScrapeInput":
        """Build from a raw input mapping (camelCase or snake_case keys)"""
        data = data or {}

        def pick(*keys, default=None):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        options = cls(
            keyword=str(pick("keyword", "keywords", default="")).strip(),
            location=str(pick("location", default="")).strip(),
            category=str(pick("category", default="")).strip(),
            results_wanted=_to_int(
                pick("results_wanted", "resultsWanted"), DEFAULT_RESULTS_WANTED
            ),
            max_pages=_to_int(pick("max_pages", "maxPages"), DEFAULT_MAX_PAGES),
            sort_by_published=_to_bool(pick("sortByPublished", "sort_by_published"), True),
            collect_details=_to_bool(pick("collectDetails", "collect_details"), True),
            dedupe=_to_bool(pick("dedupe"), True),
            start_url=str(pick("startUrl", "start_url", default="")).strip(),
            proxy_urls=_parse_proxy_urls(pick("proxyConfiguration", "proxy")),
            cookies=pick("cookies"),
            cookies_json=pick("cookiesJson", "cookies_json"),
        )
        options.apply_listing_filters()
        return options

    def apply_listing_filters(self) -> None:
        """Fill empty filters from a listing start URL's query string"""
        if not self.start_url or is_detail_url(self.start_url):
            return
        try:
            parsed = urlparse(self.start_url)
        except ValueError:
            logger.debug(f"Ignoring malformed startUrl: {self.start_url}")
            return
        if BOARD_HOST not in (parsed.hostname or "") or "/jobs" not in parsed.path:
            return

        query = parse_qs(parsed.query)
        self.keyword = self.keyword or query.get("keywords", [""])[0]
        self.location = self.location or query.get("location", [""])[0]
        self.category = self.category or query.get("category", [""])[0]


def _parse_proxy_urls(raw: Any) -> List[str]:
    """Accept {"proxyUrls": [...]}, {"proxyUrl": "..."}, a list or a string"""
    if not raw:
        return []
    if isinstance(raw, str):
        return [raw]
    if isinstance(raw, list):
        return [str(u) for u in raw if u]
    if isinstance(raw, dict):
        urls = raw.get("proxyUrls") or raw.get("proxy_urls") or []
        single = raw.get("proxyUrl") or raw.get("proxy_url")
        if single:
            urls = list(urls) + [single]
        return [str(u) for u in urls if u]
    return []
