"""Field normalization - pure helpers turning raw text/HTML into record values"""
import logging
import re
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from jobharvest.config.parser_config import LOCATION_DELIMITERS

logger = logging.getLogger(__name__)

WHITESPACE_RE = re.compile(r'\s+')


def clean_text(html: Optional[str]) -> Optional[str]:
    """Strip markup and collapse whitespace. None for empty input."""
    if not html:
        return None
    text = BeautifulSoup(str(html), 'html.parser').get_text(' ')
    text = WHITESPACE_RE.sub(' ', text).strip()
    return text or None


def normalize_location(raw: Any) -> Dict[str, Any]:
    """Split a raw location into location / is_remote / remote_type / region.

    "Remote · New York, NY" -> location "New York / NY", is_remote True,
    remote_type "Remote". Never raises; bad input gives all-None.
    """
    empty = {'location': None, 'is_remote': None, 'remote_type': None, 'region': None}
    if raw is None:
        return empty
    try:
        text = str(raw).strip().replace('[', '').replace(']', '')
        if not text:
            return empty
        parts = [p.strip() for p in re.split(LOCATION_DELIMITERS, text)]
        parts = [p for p in parts if p]
        if not parts:
            return empty

        is_remote = False
        remote_type = None
        locations = []
        for part in parts:
            if 'remote' in part.lower():
                is_remote = True
                if remote_type is None:
                    remote_type = part
            else:
                locations.append(part)

        joined = ' / '.join(locations) or None
        return {
            'location': joined,
            'is_remote': is_remote,
            'remote_type': remote_type,
            'region': joined,
        }
    except Exception as e:
        logger.debug(f"Could not normalize location {raw!r}: {e}")
        return empty


def extract_job_id(url: Any) -> Any:
    """Last non-empty path segment of a URL; the input itself if unparsable"""
    if not isinstance(url, str):
        return url
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return url
    if not parsed.scheme or not parsed.netloc:
        return url
    segments = [s for s in parsed.path.split('/') if s]
    return segments[-1] if segments else url
