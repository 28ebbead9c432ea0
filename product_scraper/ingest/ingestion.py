"""Ingestion boundary: URL validation, scrape, upsert by source URL."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlparse, urlunparse

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from product_scraper import metrics
from product_scraper.db.models import ScrapedProduct
from product_scraper.ingest.errors import InvalidUrl, PersistError
from product_scraper.ingest.fetch_pipeline import FetchPipeline
from product_scraper.ingest.models import ProductRecord
from product_scraper.ingest.site_profile import SiteProfile

logger = logging.getLogger(__name__)


def normalize_url(url: str, profile: SiteProfile) -> str:
    """
    Validate a caller-supplied URL and normalize it.

    A missing scheme becomes https. The host must be the profile's allowed
    domain or one of its subdomains.

    Args:
        url: Raw URL from the caller
        profile: Site profile the URL must belong to

    Returns:
        Normalized absolute URL (fragment dropped)

    Raises:
        InvalidUrl: If the URL is empty, malformed or for another site
    """
    raw = (url or "").strip()
    if not raw:
        raise InvalidUrl(url or "", "URL is required")

    if "://" not in raw:
        raw = f"https://{raw.lstrip('/')}"

    parsed = urlparse(raw)
    if parsed.scheme.lower() not in ("http", "https"):
        raise InvalidUrl(url, f"unsupported scheme '{parsed.scheme}'")

    host = (parsed.hostname or "").lower()
    if not host or "." not in host or " " in raw:
        raise InvalidUrl(url, "invalid URL format")

    domain = profile.allowed_domain.lower()
    if host != domain and not host.endswith(f".{domain}"):
        raise InvalidUrl(url, f"only {domain} URLs are supported")

    return urlunparse(parsed._replace(scheme=parsed.scheme.lower(), fragment=""))


@dataclass
class IngestionResult:
    """Summary of one ingest call."""

    url: str
    records: list[ProductRecord] = field(default_factory=list)
    saved: int = 0
    created: int = 0
    updated: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.records)

    @property
    def message(self) -> str:
        return f"Successfully scraped and saved {self.saved} products"

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "message": self.message,
            "url": self.url,
            "attempted": self.attempted,
            "saved": self.saved,
            "created": self.created,
            "updated": self.updated,
            "products": [r.to_dict() for r in self.records],
        }
        if self.errors:
            body["errors"] = list(self.errors)
        return body


class IngestionService:
    """Validates URLs, runs the fetch pipeline and upserts the results."""

    def __init__(
        self,
        pipeline: FetchPipeline,
        session_factory: async_sessionmaker[AsyncSession],
        profile: Optional[SiteProfile] = None,
    ):
        self.pipeline = pipeline
        self.session_factory = session_factory
        self.profile = profile or pipeline.extractor.profile

    async def ingest(self, url: str) -> IngestionResult:
        """
        Scrape a URL and persist every extracted record.

        Each record is saved in its own transaction; a failed save is
        collected into ``errors`` and the remaining records are still saved.

        Raises:
            InvalidUrl: URL rejected before any network call
            ScraperError: Any fetch pipeline failure, unchanged
        """
        normalized = normalize_url(url, self.profile)
        logger.info(f"Starting product scraping for {normalized}")

        records = await self.pipeline.scrape(normalized)
        result = IngestionResult(url=normalized, records=records)

        for record in records:
            try:
                created = await self._upsert(record)
            except PersistError as e:
                logger.error(f"{e}")
                result.errors.append(str(e))
                metrics.records_persisted_total.labels(site=record.source_website, operation="error").inc()
                continue

            result.saved += 1
            if created:
                result.created += 1
            else:
                result.updated += 1
            metrics.records_persisted_total.labels(
                site=record.source_website, operation="create" if created else "update"
            ).inc()

        logger.info(
            f"Product saving completed: attempted={result.attempted} saved={result.saved} "
            f"created={result.created} updated={result.updated} errors={len(result.errors)}"
        )
        return result

    async def _upsert(self, record: ProductRecord) -> bool:
        """Create or update one record. Returns True when a new row was created."""
        try:
            async with self.session_factory() as session:
                existing = (
                    await session.execute(
                        select(ScrapedProduct).where(ScrapedProduct.source_url == record.source_url)
                    )
                ).scalar_one_or_none()

                if existing is not None:
                    existing.title = record.title
                    existing.price = record.price
                    existing.image_url = record.image_url
                    created = False
                else:
                    session.add(
                        ScrapedProduct(
                            title=record.title,
                            price=record.price,
                            image_url=record.image_url,
                            source_url=record.source_url,
                            source_website=record.source_website,
                        )
                    )
                    created = True

                await session.commit()
        except SQLAlchemyError as e:
            raise PersistError(record.source_url, record.title, f"{type(e).__name__}: {e}") from e

        logger.debug(f"Product {'created' if created else 'updated'}: {record.source_url}")
        return created

    async def list_products(self, limit: int = 100) -> list[ScrapedProduct]:
        """Stored products, most recent first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(ScrapedProduct)
                .order_by(ScrapedProduct.created_at.desc(), ScrapedProduct.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())
