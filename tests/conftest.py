"""Shared test doubles."""
import json
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from jobharvest.data_sources.powertofly.scraper import FetchResponse


class FakeFetcher:
    """In-memory stand-in for HttpFetcher.

    `routes` maps a URL to a FetchResponse, an exception, a list of those
    (consumed in order, the last one repeats) or a callable taking params.
    Unknown URLs answer 404.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self.rotations = 0

    async def fetch(self, url, params=None):
        self.calls.append((url, dict(params or {})))
        route = self.routes.get(url)
        if callable(route):
            route = route(params or {})
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if route is None:
            return FetchResponse(404, "not found")
        if isinstance(route, Exception):
            raise route
        return route

    async def rotate_session(self):
        self.rotations += 1

    async def aclose(self):
        pass

    def urls_called(self):
        return [url for url, _ in self.calls]


def html_response(body, status=200):
    return FetchResponse(status, body)


def json_response(data, status=200):
    return FetchResponse(status, json.dumps(data))


def detail_page(job_id, title="Senior Python Engineer", company="Acme",
                location="Remote · New York, NY"):
    """Detail page carrying a JSON-LD JobPosting"""
    posting = {
        "@context": "https://schema.org",
        "@type": "JobPosting",
        "title": f"{title} {job_id}",
        "description": "<p>Build data pipelines and scrapers for a growing team of engineers.</p>",
        "datePosted": "2024-05-01",
        "employmentType": "FULL_TIME",
        "hiringOrganization": {"@type": "Organization", "name": company},
    }
    return f"""
    <html><head>
      <script type="application/ld+json">{json.dumps(posting)}</script>
    </head><body>
      <div class="job-location">{location}</div>
    </body></html>
    """


def listing_page(job_ids):
    cards = "".join(
        f'<div class="job-card"><a href="/jobs/detail/{i}?utm_source=list">Job {i}</a></div>'
        for i in job_ids
    )
    return f"<html><body>{cards}<a href='/about'>About</a></body></html>"


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()
