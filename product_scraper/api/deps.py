"""FastAPI dependencies."""

from functools import lru_cache

from product_scraper.db.session import AsyncSessionLocal
from product_scraper.ingest.fetch_pipeline import build_pipeline
from product_scraper.ingest.ingestion import IngestionService


@lru_cache(maxsize=1)
def get_ingestion_service() -> IngestionService:
    """Dependency for the shared ingestion service (stateless, built once)."""
    return IngestionService(pipeline=build_pipeline(), session_factory=AsyncSessionLocal)
