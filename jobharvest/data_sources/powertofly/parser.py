"""PowerToFly Parser - Turn detail, listing, sitemap and search payloads into data"""
import json
import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup
import pandas as pd

from jobharvest.config.crawler_config import BASE_URL
from jobharvest.config.parser_config import (
    DETAIL_SELECTORS, LISTING_SELECTORS, JSONLD_SCRIPT_TYPE,
    DETAIL_PATH_PATTERN, SITEMAP_LOC_PATTERN,
)
from .models import FIELD_NAMES, JobRecord, RawJobData
from .normalizer import WHITESPACE_RE, clean_text, extract_job_id, normalize_location

logger = logging.getLogger(__name__)

Lookup = Callable[[], Optional[str]]


# =============================================================================
# STRUCTURED DATA (JSON-LD)
# =============================================================================

def _load_jsonld_blocks(soup: BeautifulSoup) -> List[Any]:
    """Parse every JSON-LD script; malformed blocks are skipped"""
    raw = []
    for script in soup.find_all('script', type=JSONLD_SCRIPT_TYPE):
        text = (script.string or script.get_text() or '').strip()
        if not text:
            continue
        try:
            data = json.loads(text)
        except ValueError as e:
            logger.debug(f"Skipping invalid JSON-LD block: {e}")
            continue
        if isinstance(data, list):
            raw.extend(data)
        else:
            raw.append(data)
    return raw


def _flatten_graph(items: List[Any]) -> List[Dict[str, Any]]:
    flat = []
    for item in items:
        if not isinstance(item, dict):
            continue
        graph = item.get('@graph')
        if isinstance(graph, list):
            flat.extend(g for g in graph if isinstance(g, dict))
        else:
            flat.append(item)
    return flat


def _is_job_posting(item: Dict[str, Any]) -> bool:
    item_type = item.get('@type')
    if isinstance(item_type, list):
        return 'JobPosting' in item_type
    return item_type == 'JobPosting'


def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _address_text(job_location: Any) -> Optional[str]:
    location = job_location[0] if isinstance(job_location, list) and job_location else job_location
    if not isinstance(location, dict):
        return None
    address = location.get('address')
    if isinstance(address, str):
        return _as_text(address)
    if not isinstance(address, dict):
        return None
    country = address.get('addressCountry')
    if isinstance(country, dict):
        country = country.get('name')
    parts = [
        _as_text(address.get('addressLocality')),
        _as_text(address.get('addressRegion')),
        _as_text(country),
    ]
    parts = [p for p in parts if p]
    return ', '.join(parts) if parts else None


def _salary_text(base_salary: Any) -> Optional[str]:
    """amount + currency + unit, space-joined, missing parts omitted"""
    if not isinstance(base_salary, dict):
        return _as_text(base_salary)

    value = base_salary.get('value')
    quantity = value if isinstance(value, dict) else {'value': value}

    amount = quantity.get('value')
    if amount is None:
        low, high = quantity.get('minValue'), quantity.get('maxValue')
        if low is not None and high is not None and low != high:
            amount = f"{low}-{high}"
        else:
            amount = low if low is not None else high
    currency = base_salary.get('currency') or quantity.get('currency')
    unit = quantity.get('unitText') or base_salary.get('unitText')

    parts = [_as_text(p) for p in (amount, currency, unit)]
    return ' '.join(p for p in parts if p) or None


def extract_jsonld(soup: BeautifulSoup) -> Optional[RawJobData]:
    """Project the first JSON-LD JobPosting into RawJobData; None if absent"""
    candidates = _flatten_graph(_load_jsonld_blocks(soup))
    job = next((c for c in candidates if _is_job_posting(c)), None)
    if job is None:
        return None

    data: RawJobData = {}
    organization = job.get('hiringOrganization')
    employment = job.get('employmentType')
    if isinstance(employment, list):
        employment = ', '.join(str(e).strip() for e in employment if e)

    projected = {
        'title': _as_text(job.get('title')),
        'description_html': _as_text(job.get('description')),
        'company': _as_text(organization.get('name')) if isinstance(organization, dict) else None,
        'location': _address_text(job.get('jobLocation')),
        'date_posted': _as_text(job.get('datePosted')),
        'job_type': _as_text(employment),
        'salary': _salary_text(job.get('baseSalary')) if job.get('baseSalary') else None,
    }
    for key, value in projected.items():
        if value:
            data[key] = value
    return data


# =============================================================================
# SELECTOR FALLBACKS
# =============================================================================

def first_success(lookups: Iterable[Lookup]) -> Optional[str]:
    """Run lookups in order and return the first non-empty value"""
    for lookup in lookups:
        try:
            value = lookup()
        except Exception as e:
            logger.debug(f"Lookup failed: {e}")
            continue
        if value:
            return value
    return None


def _element_text(element) -> Optional[str]:
    return WHITESPACE_RE.sub(' ', element.get_text(' ')).strip() or None


def text_lookup(soup: BeautifulSoup, selector: str) -> Lookup:
    def lookup():
        element = soup.select_one(selector)
        return _element_text(element) if element else None
    return lookup


def html_lookup(soup: BeautifulSoup, selector: str) -> Lookup:
    def lookup():
        element = soup.select_one(selector)
        if not element:
            return None
        return element.decode_contents().strip() or None
    return lookup


def date_lookup(soup: BeautifulSoup, selector: str) -> Lookup:
    """Machine-readable datetime attribute first, element text second"""
    def lookup():
        element = soup.select_one(selector)
        if not element:
            return None
        return (element.get('datetime') or '').strip() or _element_text(element)
    return lookup


LOOKUP_FACTORIES = {
    'description_html': html_lookup,
    'date_posted': date_lookup,
}


def fill_from_selectors(soup: BeautifulSoup, data: RawJobData) -> RawJobData:
    """Fill fields still missing from `data` using the selector groups"""
    for field_name, selectors in DETAIL_SELECTORS.items():
        if data.get(field_name):
            continue
        factory = LOOKUP_FACTORIES.get(field_name, text_lookup)
        value = first_success(factory(soup, s) for s in selectors)
        if value:
            data[field_name] = value
    return data


# =============================================================================
# RECORD ASSEMBLY
# =============================================================================

def assemble_record(html: Optional[str], url: str) -> JobRecord:
    """Merge JSON-LD and selector data for one detail page into a JobRecord"""
    try:
        soup = BeautifulSoup(html or '', 'html.parser')
    except Exception as e:
        logger.warning(f"Unparseable document for {url}: {e}")
        return JobRecord.stub(url)

    data = extract_jsonld(soup) or {}
    fill_from_selectors(soup, data)

    loc = normalize_location(data.get('location'))
    description_html = data.get('description_html')

    return JobRecord(
        job_id=extract_job_id(url),
        url=url,
        title=data.get('title'),
        company=data.get('company'),
        location=loc['location'],
        is_remote=loc['is_remote'],
        remote_type=loc['remote_type'],
        region=loc['region'],
        salary=data.get('salary'),
        job_type=data.get('job_type'),
        date_posted=data.get('date_posted'),
        description_html=description_html,
        description_text=clean_text(description_html),
    )


# =============================================================================
# DISCOVERY PAYLOADS
# =============================================================================

def canonical_url(href: str, base_url: str = BASE_URL) -> str:
    """Absolute URL without query string or fragment"""
    parts = urlsplit(urljoin(base_url, href.strip()))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, '', ''))


def parse_listing_links(html: str, base_url: str = BASE_URL) -> List[str]:
    """Detail URLs from a listing page, in page order"""
    soup = BeautifulSoup(html or '', 'html.parser')

    cards = []
    for selector in LISTING_SELECTORS['job_card']:
        cards = soup.select(selector)
        if cards:
            break

    anchors = [a for card in cards for a in card.select(LISTING_SELECTORS['card_link'])]
    links = _detail_links(anchors, base_url)
    if not links:
        links = _detail_links(soup.select('a[href]'), base_url)

    logger.debug(f"Parsed {len(links)} detail links ({len(cards)} cards)")
    return links


def _detail_links(anchors, base_url: str) -> List[str]:
    links = []
    for anchor in anchors:
        try:
            url = canonical_url(anchor['href'], base_url)
        except ValueError:
            continue
        if re.search(DETAIL_PATH_PATTERN, url) and url not in links:
            links.append(url)
    return links


def parse_sitemap_locs(xml: str) -> List[str]:
    """All <loc> values of a sitemap or sitemap index"""
    return [loc.strip() for loc in re.findall(SITEMAP_LOC_PATTERN, xml or '')]


def parse_search_response(body: str) -> Tuple[List[str], Optional[int]]:
    """Job ids and optional total count from a search API response"""
    try:
        data = json.loads(body)
    except (TypeError, ValueError) as e:
        logger.warning(f"Search response is not JSON: {e}")
        return [], None
    if not isinstance(data, dict):
        return [], None

    jobs = data.get('jobs') if isinstance(data.get('jobs'), list) else []
    ids = [str(job['id']) for job in jobs if isinstance(job, dict) and job.get('id')]
    total = data.get('total') if isinstance(data.get('total'), int) else None
    return ids, total


# =============================================================================
# EXPORT
# =============================================================================

def records_to_dataframe(records: List[JobRecord]) -> pd.DataFrame:
    """Convert records to a DataFrame with a fixed column order"""
    if not records:
        return pd.DataFrame(columns=FIELD_NAMES)

    df = pd.DataFrame([r.to_dict() for r in records])
    df = df.drop_duplicates(subset=['job_id'])
    df = df.replace({'': None})
    df = df.astype(object).where(pd.notna(df), None)
    return df[FIELD_NAMES]
