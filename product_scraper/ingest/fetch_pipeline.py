"""Fetch pipeline: pacing, proxy lease, fetch, classification, extraction.

``FetchPipeline.scrape(url)`` is the single entry point of the scraping
engine. One call performs exactly one HTTP round trip through exactly one
proxy lease and either returns the extracted records (possibly none) or
raises a typed :class:`~product_scraper.ingest.errors.ScraperError`. Retrying
is left to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

import httpx

from product_scraper import metrics
from product_scraper.config import settings
from product_scraper.ingest.classifier import classify, classify_response
from product_scraper.ingest.errors import (
    AntiBotDetected,
    Blocked,
    FetchFailed,
    NoProxyAvailable,
    ScraperError,
)
from product_scraper.ingest.extractor import ContentExtractor
from product_scraper.ingest.header_builder import HeaderBuilder
from product_scraper.ingest.models import FetchAttempt, FetchOutcome, ProductRecord, ProxyLease
from product_scraper.ingest.pacing import Pacer
from product_scraper.ingest.proxy_client import ProxyClient
from product_scraper.ingest.site_profile import load_site_profile
from product_scraper.logging_config import get_logger

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ProxyLease], httpx.AsyncClient]


@dataclass(frozen=True)
class HttpClientConfig:
    """Immutable HTTP settings for page fetches."""

    connect_timeout: float = 10.0
    total_timeout: float = 30.0
    max_redirects: int = 5
    # Certificates are not verified: TLS is terminated by the proxy layer
    verify_tls: bool = False

    @classmethod
    def from_settings(cls) -> "HttpClientConfig":
        return cls(
            connect_timeout=settings.connect_timeout,
            total_timeout=settings.request_timeout,
            max_redirects=settings.max_redirects,
            verify_tls=settings.verify_tls,
        )

    @property
    def timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.total_timeout, connect=self.connect_timeout)

    def build_client(self, lease: ProxyLease) -> httpx.AsyncClient:
        """Client routed through the leased proxy. httpx only speaks http/https."""
        return httpx.AsyncClient(
            proxy=lease.url,
            timeout=self.timeout,
            verify=self.verify_tls,
            follow_redirects=True,
            max_redirects=self.max_redirects,
        )


class FetchPipeline:
    """Runs one scrape: pace, lease, fetch, classify, report, extract."""

    def __init__(
        self,
        proxy_client: ProxyClient,
        extractor: ContentExtractor,
        pacer: Optional[Pacer] = None,
        header_builder: Optional[HeaderBuilder] = None,
        http_config: Optional[HttpClientConfig] = None,
        client_factory: Optional[ClientFactory] = None,
        anti_bot_phrases: Optional[Sequence[str]] = None,
        blocking_statuses: Optional[Iterable[int]] = None,
    ):
        self.proxy_client = proxy_client
        self.extractor = extractor
        self.pacer = pacer or Pacer()
        self.header_builder = header_builder or HeaderBuilder()
        self.http_config = http_config or HttpClientConfig.from_settings()
        self._client_factory = client_factory or self.http_config.build_client
        self.anti_bot_phrases = tuple(
            settings.anti_bot_phrases if anti_bot_phrases is None else anti_bot_phrases
        )
        self.blocking_statuses = frozenset(
            settings.blocking_statuses if blocking_statuses is None else blocking_statuses
        )

    @property
    def site(self) -> str:
        return self.extractor.profile.source_website

    async def scrape(self, url: str) -> list[ProductRecord]:
        """
        Scrape one page.

        Args:
            url: Absolute page URL (listing or detail)

        Returns:
            Extracted records; an empty list is a successful fetch with no matches

        Raises:
            NoProxyAvailable: The rotator gave no lease; nothing was fetched
            Blocked: Target answered with a blocking status
            AntiBotDetected: Body matched an anti-bot phrase
            FetchFailed: Transport error, unexpected HTTP status or other fetch failure
        """
        started = time.monotonic()
        outcome = "error"
        try:
            records = await self._scrape(url)
            outcome = "ok" if records else "empty"
            return records
        except ScraperError as e:
            outcome = type(e).__name__
            raise
        finally:
            metrics.scrape_requests_total.labels(site=self.site, outcome=outcome).inc()
            metrics.scrape_duration_seconds.labels(site=self.site).observe(time.monotonic() - started)

    async def _scrape(self, url: str) -> list[ProductRecord]:
        log = get_logger(__name__, url=url, site=self.site)
        log.info(f"Starting to scrape: {url}")

        await self.pacer.wait()

        lease = await self.proxy_client.next()
        if lease is None:
            log.error("No proxy lease available, aborting scrape")
            raise NoProxyAvailable()

        attempt = FetchAttempt(
            url=url,
            lease=lease,
            user_agent=self.header_builder.choose_user_agent(),
        )

        try:
            html = await self._fetch(attempt)
        except ScraperError as e:
            await self.proxy_client.report_failure(lease)
            log.error(f"Scraping failed ({attempt.outcome.value if attempt.outcome else 'error'}): {e}")
            raise
        except Exception as e:
            await self.proxy_client.report_failure(lease)
            log.exception(f"Unexpected error fetching {url}")
            raise FetchFailed(f"{type(e).__name__}: {e}", url=url) from e

        await self.proxy_client.report_success(lease)

        page_type = self.extractor.page_type(url)
        if attempt.final_url and attempt.final_url != url:
            landed_on = classify(attempt.final_url, self.extractor.profile.detail_url_patterns)
            if landed_on is not page_type:
                log.warning(
                    f"Redirected from a {page_type.value} URL to a {landed_on.value} page "
                    f"({attempt.final_url}), extracting with {page_type.value} selectors"
                )

        records = self.extractor.extract(html, url)
        if records:
            metrics.records_extracted_total.labels(site=self.site, page_type=page_type.value).inc(len(records))
            log.info(f"Extracted {len(records)} products from {page_type.value} page")
        else:
            metrics.scrape_empty_extractions_total.labels(site=self.site, page_type=page_type.value).inc()
            log.warning(
                f"No products extracted from {page_type.value} page "
                f"(HTTP {attempt.status_code}, {len(html)} bytes), selectors may have drifted"
            )
        return records

    async def _fetch(self, attempt: FetchAttempt) -> str:
        """Perform the HTTP round trip and classify it. Returns the body on OK."""
        headers = self.header_builder.build_headers(attempt.user_agent)
        logger.info(f"Fetching {attempt.url} via proxy {attempt.lease.host}:{attempt.lease.port}")

        started = time.monotonic()
        try:
            async with self._client_factory(attempt.lease) as client:
                response = await asyncio.wait_for(
                    client.get(attempt.url, headers=headers),
                    timeout=self.http_config.total_timeout,
                )
                body = response.text
                attempt.final_url = str(response.url)
        except (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError) as e:
            attempt.outcome = FetchOutcome.TRANSPORT_ERROR
            attempt.detail = f"{type(e).__name__}: {e}"
            raise FetchFailed(attempt.detail, url=attempt.url) from e
        finally:
            attempt.elapsed = time.monotonic() - started

        attempt.status_code = response.status_code
        attempt.outcome, attempt.detail = classify_response(
            response.status_code, body, self.anti_bot_phrases, self.blocking_statuses
        )
        logger.info(
            f"Got response {response.status_code} for {attempt.url} "
            f"in {attempt.elapsed:.2f}s ({attempt.outcome.value})"
        )

        if attempt.outcome is FetchOutcome.BLOCKED:
            logger.debug(f"Blocked response body: {body[:500]}")
            raise Blocked(response.status_code, url=attempt.url)
        if attempt.outcome is FetchOutcome.HTTP_ERROR:
            raise FetchFailed(
                f"HTTP {response.status_code}", url=attempt.url, status_code=response.status_code
            )
        if attempt.outcome is FetchOutcome.ANTI_BOT:
            raise AntiBotDetected(attempt.detail, url=attempt.url)
        return body


def build_pipeline(proxy_client: Optional[ProxyClient] = None) -> FetchPipeline:
    """Wire a pipeline from application settings and the configured site profile."""
    profile = load_site_profile()
    return FetchPipeline(
        proxy_client=proxy_client or ProxyClient(),
        extractor=ContentExtractor(profile),
    )
