"""PowerToFly Scraper - httpx fetch client with retry, backoff and block detection"""
import asyncio
import functools
import itertools
import json
import logging
import random
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type

import httpx

from jobharvest.config.crawler_config import (
    DEFAULT_HEADERS, DESKTOP_AGENTS, BLOCK_PATTERNS,
    MAX_RETRIES, REQUEST_TIMEOUT, RETRY_DELAY, RETRY_BACKOFF,
)

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Request failed and should not be retried"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientFetchError(FetchError):
    """Timeout, connection failure or 429/5xx - worth another attempt"""


class BlockDetectedError(TransientFetchError):
    """Response is a block / verification page"""


@dataclass
class FetchResponse:
    status_code: int
    body: str
    headers: Dict[str, str] = field(default_factory=dict)


def get_random_ua() -> str:
    return random.choice(DESKTOP_AGENTS)


def async_retry(max_tries=3, delay_seconds=1.0, backoff_factor=2.0, jitter=True,
                retry_on: Tuple[Type[BaseException], ...] = (TransientFetchError,),
                on_retry: Optional[Callable[[BaseException], Awaitable[None]]] = None):
    """Async retry decorator with exponential backoff and jitter"""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            tries = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    tries += 1
                    if tries >= max_tries:
                        logger.warning(f"{func.__name__} failed after {tries} tries: {e}")
                        raise
                    delay = delay_seconds * (backoff_factor ** (tries - 1))
                    if jitter:
                        delay = delay * (0.5 + random.random())
                    logger.info(f"Retry {tries}/{max_tries-1} for {func.__name__} after {delay:.2f}s: {e}")
                    if on_retry is not None:
                        await on_retry(e)
                    await asyncio.sleep(delay)
        return wrapper
    return decorator


def detect_block(html: str) -> bool:
    """Check if page is an explicit denial / verification page"""
    if not html:
        return False
    for pattern in BLOCK_PATTERNS:
        if re.search(pattern, html, re.IGNORECASE):
            logger.warning(f"Block pattern detected: {pattern}")
            return True
    return False


def check_response(response: FetchResponse, url: str) -> FetchResponse:
    """Classify a response into success, transient failure or hard failure"""
    status = response.status_code
    if detect_block(response.body):
        raise BlockDetectedError(f"Block page at {url} (HTTP {status})", status)
    if status == 429 or status >= 500:
        raise TransientFetchError(f"HTTP {status} for {url}", status)
    if status >= 400:
        raise FetchError(f"HTTP {status} for {url}", status)
    return response


def build_cookie_header(cookies: Optional[str] = None, cookies_json: Any = None) -> Optional[str]:
    """Merge a raw cookie string and a structured cookie list into one header"""
    parts = []
    if cookies and isinstance(cookies, str):
        parts.append(cookies.strip())

    if cookies_json:
        try:
            parsed = json.loads(cookies_json) if isinstance(cookies_json, str) else cookies_json
        except ValueError as e:
            logger.warning(f"Failed to parse cookiesJson: {e}")
            parsed = None
        if isinstance(parsed, list):
            for cookie in parsed:
                if isinstance(cookie, dict) and cookie.get('name') and cookie.get('value'):
                    parts.append(f"{cookie['name']}={cookie['value']}")
        elif isinstance(parsed, dict):
            parts.extend(f"{k}={v}" for k, v in parsed.items() if k and v)

    header = '; '.join(p for p in parts if p)
    return header or None


def build_headers(cookie_header: Optional[str] = None) -> Dict[str, str]:
    headers = dict(DEFAULT_HEADERS)
    if cookie_header:
        headers['cookie'] = cookie_header
    return headers


class HttpFetcher:
    """Single-attempt fetch client over httpx.AsyncClient.

    Proxy URLs are used round-robin; rotate_session() retires the current
    client (cookies, connection pool) and picks a fresh identity.
    """

    def __init__(self, headers: Optional[Dict[str, str]] = None,
                 proxy_urls: Optional[List[str]] = None,
                 timeout: float = REQUEST_TIMEOUT,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.headers = dict(headers or DEFAULT_HEADERS)
        self.timeout = timeout
        self._proxies = itertools.cycle(proxy_urls) if proxy_urls else None
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._retired: List[httpx.AsyncClient] = []
        self.rotations = 0

    def _new_client(self) -> httpx.AsyncClient:
        proxy = next(self._proxies) if self._proxies else None
        kwargs = {
            'headers': self.headers,
            'timeout': httpx.Timeout(self.timeout),
            'follow_redirects': True,
        }
        if self._transport is not None:
            kwargs['transport'] = self._transport
        elif proxy:
            kwargs['proxy'] = proxy
        return httpx.AsyncClient(**kwargs)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = self._new_client()
        return self._client

    async def fetch(self, url: str, params: Optional[Dict[str, Any]] = None) -> FetchResponse:
        """GET url once.

        Timeouts, connection errors and a client closed mid-request raise
        TransientFetchError; any other request error raises FetchError.
        """
        client = self.client
        try:
            response = await client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise TransientFetchError(f"Timeout fetching {url}: {e}") from e
        except httpx.TransportError as e:
            raise TransientFetchError(f"Connection error fetching {url}: {e}") from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise FetchError(f"Request failed for {url}: {e}") from e
        except RuntimeError as e:
            if not client.is_closed:
                raise
            raise TransientFetchError(f"Session closed while fetching {url}") from e
        return FetchResponse(
            status_code=response.status_code,
            body=response.text,
            headers=dict(response.headers),
        )

    async def rotate_session(self) -> None:
        """Invalidate the session: new client, new user agent, next proxy.

        The old client is detached first and only closed in aclose(), so
        requests already running on it can finish.
        """
        old, self._client = self._client, None
        if old is not None:
            self._retired.append(old)
        self.headers['user-agent'] = get_random_ua()
        self.rotations += 1
        logger.info(f"Session rotated ({self.rotations} so far)")

    async def aclose(self) -> None:
        clients, self._retired = self._retired, []
        if self._client is not None:
            clients.append(self._client)
            self._client = None
        for client in clients:
            await client.aclose()

    async def __aenter__(self) -> "HttpFetcher":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()


async def fetch_with_retry(fetcher, url: str, params: Optional[Dict[str, Any]] = None,
                           max_tries: int = MAX_RETRIES,
                           delay_seconds: float = RETRY_DELAY) -> FetchResponse:
    """Fetch and classify a URL, retrying transient failures.

    A detected block page invalidates the fetcher's session before the
    next attempt.
    """
    async def invalidate_on_block(exc: BaseException) -> None:
        if isinstance(exc, BlockDetectedError):
            await fetcher.rotate_session()

    @async_retry(max_tries=max_tries, delay_seconds=delay_seconds,
                 backoff_factor=RETRY_BACKOFF, on_retry=invalidate_on_block)
    async def fetch_page():
        response = await fetcher.fetch(url, params=params)
        return check_response(response, url)

    return await fetch_page()
