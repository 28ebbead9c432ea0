"""Shared fixtures for scraper tests."""

from pathlib import Path
from typing import Callable

import httpx
import pytest

from product_scraper.ingest.models import ProxyLease
from product_scraper.ingest.site_profile import SiteProfile

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def site_profile() -> SiteProfile:
    return SiteProfile(
        name="site.example",
        origin="https://site.example",
        allowed_domain="site.example",
    )


@pytest.fixture
def listing_html() -> str:
    return load_fixture("listing_page.html")


@pytest.fixture
def detail_html() -> str:
    return load_fixture("detail_page.html")


@pytest.fixture
def robot_check_html() -> str:
    return load_fixture("robot_check.html")


@pytest.fixture
def lease() -> ProxyLease:
    return ProxyLease.from_payload({"host": "10.0.0.7", "port": 8118, "fail_count": 0})


class RecordingClientFactory:
    """Client factory double: records every lease and serves responses from a handler."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.handler = handler
        self.leases: list[ProxyLease] = []
        self.requests: list[httpx.Request] = []

    def __call__(self, lease: ProxyLease) -> httpx.AsyncClient:
        self.leases.append(lease)

        def handle(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return self.handler(request)

        return httpx.AsyncClient(
            transport=httpx.MockTransport(handle),
            follow_redirects=True,
            max_redirects=5,
        )


@pytest.fixture
def client_factory_for() -> Callable[..., RecordingClientFactory]:
    return RecordingClientFactory
