"""Tests for site profile loading."""

import json

import pytest

from product_scraper.ingest.extractor import ContentExtractor
from product_scraper.ingest.site_profile import LISTING_SELECTORS, SiteProfile, load_site_profile


def test_defaults_target_amazon():
    profile = load_site_profile("")

    assert profile.source_website == "amazon.com"
    assert profile.origin == "https://www.amazon.com"
    assert profile.listing_containers[0] == 'div[data-component-type="s-card-container"]'
    assert profile.require_price_on_listing is True
    assert profile.require_price_on_detail is False


def test_defaults_are_not_shared():
    first = SiteProfile()
    second = SiteProfile()
    first.listing.title.append(".custom-title")

    assert ".custom-title" not in second.listing.title
    assert ".custom-title" not in LISTING_SELECTORS.title


def test_partial_override_from_file(tmp_path):
    path = tmp_path / "shop.json"
    path.write_text(
        json.dumps(
            {
                "name": "shop.example",
                "origin": "https://shop.example",
                "allowed_domain": "shop.example",
                "detail_url_patterns": [r"/product/\d+"],
                "listing_containers": ["li.product-card"],
                "listing": {
                    "title": [".card-title"],
                    "price": [".card-price"],
                    "image": ["img.card-img"],
                    "product_url": ["a.card-link"],
                },
            }
        ),
        encoding="utf-8",
    )

    profile = load_site_profile(str(path))
    assert profile.listing_containers == ["li.product-card"]
    assert profile.detail.title[0] == "#productTitle"

    html = """
    <ul>
      <li class="product-card">
        <a class="card-link" href="/product/17"><span class="card-title">Shop Widget Deluxe</span></a>
        <img class="card-img" src="/media/17.png"><span class="card-price">EUR 12.50</span>
      </li>
    </ul>
    """
    records = ContentExtractor(profile).extract(html, "https://shop.example/category/widgets")

    assert len(records) == 1
    assert records[0].source_url == "https://shop.example/product/17"
    assert records[0].image_url == "https://shop.example/media/17.png"
    assert records[0].source_website == "shop.example"


def test_invalid_profile_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text(json.dumps({"listing_containers": "not-a-list"}), encoding="utf-8")

    with pytest.raises(ValueError):
        load_site_profile(str(path))
