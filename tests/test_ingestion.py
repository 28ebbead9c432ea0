"""Tests for the ingestion boundary (URL validation and upsert)."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from product_scraper.db.models import Base
from product_scraper.ingest.errors import Blocked, InvalidUrl
from product_scraper.ingest.ingestion import IngestionService, normalize_url
from product_scraper.ingest.models import ProductRecord
from product_scraper.ingest.site_profile import SiteProfile

AMAZON = SiteProfile()


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


def _record(url: str, title: str = "Widget X", price: str | None = "19.99") -> ProductRecord:
    return ProductRecord(
        title=title,
        price=Decimal(price) if price is not None else None,
        image_url="https://site.example/img/w.jpg",
        source_url=url,
        source_website="site.example",
    )


def _pipeline(profile, *scrape_results):
    pipeline = MagicMock()
    pipeline.extractor.profile = profile
    pipeline.scrape = AsyncMock(side_effect=list(scrape_results))
    return pipeline


class TestNormalizeUrl:
    """Scope and format validation."""

    def test_scheme_added(self):
        assert normalize_url("www.amazon.com/s?k=widget", AMAZON) == "https://www.amazon.com/s?k=widget"

    def test_subdomain_and_bare_domain_accepted(self):
        assert normalize_url("https://amazon.com/dp/B01", AMAZON) == "https://amazon.com/dp/B01"
        assert normalize_url("  HTTPS://smile.amazon.com/dp/B01#reviews ", AMAZON) == "https://smile.amazon.com/dp/B01"

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "   ",
            "ftp://www.amazon.com/dp/B01",
            "https://www.ebay.com/itm/1",
            "https://notamazon.com/dp/B01",
            "https://amazon.com.attacker.io/dp/B01",
            "https://evil.example/www.amazon.com/dp/B01",
            "https:///dp/B01",
        ],
    )
    def test_rejected(self, url):
        with pytest.raises(InvalidUrl) as exc_info:
            normalize_url(url, AMAZON)
        assert exc_info.value.retryable is False


@pytest.mark.asyncio
async def test_same_detail_url_twice_persists_once(site_profile, session_factory):
    url = "https://site.example/dp/ABC123"
    pipeline = _pipeline(
        site_profile,
        [_record(url, price="19.99")],
        [_record(url, title="Widget X (2024)", price="17.49")],
    )
    service = IngestionService(pipeline, session_factory)

    first = await service.ingest(url)
    second = await service.ingest(url)

    assert (first.created, first.updated) == (1, 0)
    assert (second.created, second.updated) == (0, 1)

    stored = await service.list_products()
    assert len(stored) == 1
    assert stored[0].source_url == url
    assert stored[0].title == "Widget X (2024)"
    assert stored[0].price == Decimal("17.49")


@pytest.mark.asyncio
async def test_one_bad_record_does_not_stop_others(site_profile, session_factory):
    good = _record("https://site.example/dp/GOOD1")
    bad = _record("https://site.example/dp/BAD1", title=None)
    pipeline = _pipeline(site_profile, [bad, good])
    service = IngestionService(pipeline, session_factory)

    result = await service.ingest("https://site.example/s?k=widget")

    assert result.attempted == 2
    assert result.saved == 1
    assert len(result.errors) == 1
    assert "Failed to save product" in result.errors[0]

    body = result.to_dict()
    assert body["message"] == "Successfully scraped and saved 1 products"
    assert body["errors"] == result.errors
    assert [p["source_url"] for p in body["products"]] == [bad.source_url, good.source_url]

    stored = await service.list_products()
    assert [p.source_url for p in stored] == [good.source_url]


@pytest.mark.asyncio
async def test_list_most_recent_first(site_profile, session_factory):
    pipeline = _pipeline(
        site_profile,
        [_record("https://site.example/dp/FIRST")],
        [_record("https://site.example/dp/SECOND")],
    )
    service = IngestionService(pipeline, session_factory)

    await service.ingest("https://site.example/dp/FIRST")
    await service.ingest("https://site.example/dp/SECOND")

    stored = await service.list_products()
    assert [p.source_url for p in stored] == [
        "https://site.example/dp/SECOND",
        "https://site.example/dp/FIRST",
    ]


@pytest.mark.asyncio
async def test_invalid_url_never_scrapes(site_profile, session_factory):
    pipeline = _pipeline(site_profile)
    service = IngestionService(pipeline, session_factory)

    with pytest.raises(InvalidUrl):
        await service.ingest("https://other.example/dp/ABC")

    pipeline.scrape.assert_not_awaited()


@pytest.mark.asyncio
async def test_scrape_errors_propagate(site_profile, session_factory):
    pipeline = _pipeline(site_profile, Blocked(503, "https://site.example/s"))
    service = IngestionService(pipeline, session_factory)

    with pytest.raises(Blocked):
        await service.ingest("site.example/s")

    pipeline.scrape.assert_awaited_once_with("https://site.example/s")
    assert await service.list_products() == []
