"""Crawler configuration - Endpoints, headers, retry and concurrency settings"""
import os

# Endpoints
BASE_URL = "https://powertofly.com"
LISTING_URL = f"{BASE_URL}/jobs/"
DETAIL_BASE = f"{BASE_URL}/jobs/detail/"
SEARCH_ENDPOINT = "https://search.prd.powertofly.com/jobs/search"
SITEMAP_INDEX_URL = f"{BASE_URL}/sitemap.xml"
BOARD_HOST = "powertofly.com"

# Crawler settings
CONCURRENCY = int(os.getenv("HARVEST_CONCURRENCY", "20"))
MAX_RETRIES = int(os.getenv("HARVEST_MAX_RETRIES", "3"))
REQUEST_TIMEOUT = float(os.getenv("HARVEST_REQUEST_TIMEOUT", "20"))
RETRY_DELAY = float(os.getenv("HARVEST_RETRY_DELAY", "1.0"))
RETRY_BACKOFF = 2.0
SEARCH_PAGE_SIZE = 50
SEARCH_STALL_LIMIT = 2

# Defaults for the run input
DEFAULT_RESULTS_WANTED = 100
DEFAULT_MAX_PAGES = 20

DEFAULT_HEADERS = {
    "user-agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    ),
    "accept-language": "en-US,en;q=0.9",
}

# Rotated in on session invalidation
DESKTOP_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:123.0) Gecko/20100101 Firefox/123.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_3) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.3 Safari/605.1.15",
]

# Block page phrases. Kept narrow: normal pages ship anti-bot scripts too.
BLOCK_PATTERNS = [
    r'access\s+denied',
    r'please\s+verify\s+you\s+are\s+(a\s+)?human',
    r'verify\s+you\s+are\s+not\s+a\s+robot',
    r'unusual\s+traffic\s+from\s+your',
    r'request\s+has\s+been\s+blocked',
    r'<title>\s*just\s+a\s+moment',
]
