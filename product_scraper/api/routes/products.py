"""Product routes: list stored products and scrape a URL into the store."""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict

from product_scraper.api.deps import get_ingestion_service
from product_scraper.ingest.errors import InvalidUrl, ScraperError
from product_scraper.ingest.ingestion import IngestionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["products"])


class ScrapeRequest(BaseModel):
    url: str


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    price: Optional[float]
    image_url: Optional[str]
    source_url: str
    source_website: str
    created_at: datetime
    updated_at: datetime


@router.get("", response_model=List[ProductResponse])
async def list_products(
    limit: int = Query(100, ge=1, le=1000),
    service: IngestionService = Depends(get_ingestion_service),
):
    """List stored products, most recent first."""
    products = await service.list_products(limit=limit)
    logger.info(f"Retrieved {len(products)} products from database")
    return products


@router.post("/scrape")
async def scrape_products(
    request: ScrapeRequest,
    service: IngestionService = Depends(get_ingestion_service),
):
    """
    Scrape a listing or product page and upsert the results.

    Per-record save failures are returned in ``errors`` next to the
    products that were saved.
    """
    try:
        result = await service.ingest(request.url)
    except InvalidUrl as e:
        raise HTTPException(status_code=422, detail={"error": str(e), "retryable": e.retryable})
    except ScraperError as e:
        logger.error(f"Scraping failed for {request.url}: {e}")
        raise HTTPException(
            status_code=503,
            detail={"error": str(e), "type": type(e).__name__, "retryable": e.retryable},
        )
    return result.to_dict()
