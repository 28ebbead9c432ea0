"""Per-site selector strategy table.

A :class:`SiteProfile` is pure data: ordered selector lists per field and per
page type, plus the origin used to absolutise links. The built-in defaults
target Amazon search-result grids and product pages; a JSON file referenced by
``SITE_PROFILE_PATH`` replaces them without a redeploy.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from product_scraper.config import settings

logger = logging.getLogger(__name__)


class FieldSelectors(BaseModel):
    """Ordered selector lists for the four extracted fields."""

    title: list[str] = Field(default_factory=list)
    price: list[str] = Field(default_factory=list)
    image: list[str] = Field(default_factory=list)
    image_attributes: list[str] = Field(default_factory=lambda: ["src", "data-src", "data-old-hires"])
    product_url: list[str] = Field(default_factory=list)


# Listing cards, several historical markup variants
LISTING_SELECTORS = FieldSelectors(
    title=[
        "h2 a span",
        ".a-size-medium",
        ".a-text-normal",
        "h2 .a-link-normal .a-text-normal",
        ".a-size-medium.a-color-base.a-text-normal",
        ".a-size-base-plus.a-color-base.a-text-normal",
        ".a-size-base-plus",
        ".a-size-mini",
        ".a-link-normal .a-text-normal",
        'a[href*="/dp/"] span',
        'a[href*="/gp/product/"] span',
    ],
    price=[
        ".a-price .a-offscreen",
        ".a-price-whole",
        ".a-color-price",
        ".a-price",
        ".a-price-range",
        ".a-color-base .a-price",
    ],
    image=[
        ".s-image",
        ".a-image-container img",
        'img[data-image-latency="s-product-image"]',
        "img[data-a-dynamic-image]",
        'img[src*="images/I"]',
        'img[src*="media/s"]',
    ],
    product_url=[
        "h2 a.a-link-normal",
        ".a-link-normal.s-underline-text",
        'a[href*="/dp/"]',
        'a[href*="/gp/product/"]',
    ],
)

# Single product page, ordered by priority (most common layouts first)
DETAIL_SELECTORS = FieldSelectors(
    title=[
        "#productTitle",
        "#title span",
        "h1#title",
        "h1",
    ],
    price=[
        "#corePrice_feature_div .a-price .a-offscreen",
        "#apex_offerDisplay_desktop .a-price .a-offscreen",
        ".priceToPay .a-offscreen",
        "#price_inside_buybox",
        "#newBuyBoxPrice",
        "#priceblock_ourprice",
        "#priceblock_dealprice",
        "#priceblock_saleprice",
        ".a-price:not(.a-text-price) .a-offscreen",
        ".a-price .a-offscreen",
        ".price",
    ],
    image=[
        "#landingImage",
        "#imgBlkFront",
        "#main-image-container img",
        "img[data-old-hires]",
        ".product-image img",
        "img",
    ],
)


class SiteProfile(BaseModel):
    """Everything the extractor and boundary need to know about one site."""

    name: str = "amazon.com"
    origin: str = "https://www.amazon.com"
    allowed_domain: str = "amazon.com"
    detail_url_patterns: list[str] = Field(default_factory=lambda: [r"/dp/", r"/gp/product/"])
    listing_containers: list[str] = Field(
        default_factory=lambda: [
            'div[data-component-type="s-card-container"]',
            'div[data-component-type="s-search-result"]',
            "div.s-result-item",
            "div[data-asin]",
        ]
    )
    listing: FieldSelectors = Field(default_factory=lambda: LISTING_SELECTORS.model_copy(deep=True))
    detail: FieldSelectors = Field(default_factory=lambda: DETAIL_SELECTORS.model_copy(deep=True))
    require_price_on_listing: bool = True
    require_price_on_detail: bool = False
    title_min_length: int = 10
    title_max_length: int = 200

    @property
    def source_website(self) -> str:
        return self.name


def load_site_profile(path: Optional[str] = None) -> SiteProfile:
    """
    Load the site profile.

    Args:
        path: JSON file with a (partial) profile. Falls back to
              ``settings.site_profile_path``; built-in defaults when unset.

    Returns:
        SiteProfile instance

    Raises:
        ValueError: If the file exists but is not a valid profile
    """
    path = path if path is not None else settings.site_profile_path
    if not path:
        return SiteProfile()

    profile_file = Path(path)
    data = json.loads(profile_file.read_text(encoding="utf-8"))
    profile = SiteProfile.model_validate(data)
    logger.info(
        f"Loaded site profile '{profile.name}' from {profile_file} "
        f"({len(profile.listing_containers)} listing containers)"
    )
    return profile
