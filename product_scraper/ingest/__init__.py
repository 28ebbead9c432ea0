"""Scraping engine: proxy leasing, fetching, classification and extraction."""

from product_scraper.ingest.errors import (
    AntiBotDetected,
    Blocked,
    FetchFailed,
    InvalidUrl,
    NoProxyAvailable,
    PersistError,
    ScraperError,
)
from product_scraper.ingest.models import FetchOutcome, PageType, ProductRecord, ProxyLease

__all__ = [
    "AntiBotDetected",
    "Blocked",
    "FetchFailed",
    "FetchOutcome",
    "InvalidUrl",
    "NoProxyAvailable",
    "PageType",
    "PersistError",
    "ProductRecord",
    "ProxyLease",
    "ScraperError",
]
