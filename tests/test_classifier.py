"""Tests for page and response classification."""

import pytest

from product_scraper.ingest.classifier import classify, classify_response, find_anti_bot_phrase
from product_scraper.ingest.models import FetchOutcome, PageType

PHRASES = ["Robot Check", "Enter the characters you see below"]


@pytest.mark.parametrize(
    "url",
    [
        "https://site.example/dp/ABC123",
        "https://www.amazon.com/Some-Widget-Name/dp/B0C1234567/ref=sr_1_3?keywords=widget",
        "https://www.amazon.com/gp/product/B0C1234567",
    ],
)
def test_detail_urls(url):
    assert classify(url) is PageType.DETAIL


@pytest.mark.parametrize(
    "url",
    [
        "https://www.amazon.com/s?k=widget",
        "https://www.amazon.com/b?node=172282",
        "https://www.amazon.com/",
        # marker only in the query string is not a detail path
        "https://www.amazon.com/s?k=/dp/",
    ],
)
def test_listing_urls(url):
    assert classify(url) is PageType.LISTING


def test_classify_is_pure():
    url = "https://site.example/dp/ABC123"
    results = {classify(url) for _ in range(5)}
    assert results == {PageType.DETAIL}


def test_custom_patterns():
    patterns = [r"/product/\d+"]
    assert classify("https://shop.example/product/991", patterns) is PageType.DETAIL
    assert classify("https://shop.example/dp/991", patterns) is PageType.LISTING


def test_find_anti_bot_phrase():
    assert find_anti_bot_phrase("<title>Robot Check</title>", PHRASES) == "Robot Check"
    assert find_anti_bot_phrase("<html>products</html>", PHRASES) is None
    assert find_anti_bot_phrase("", PHRASES) is None


class TestClassifyResponse:
    """HTTP status and body classification."""

    def test_blocking_status(self):
        assert classify_response(503, "", PHRASES) == (FetchOutcome.BLOCKED, "503")

    @pytest.mark.parametrize("status", [404, 410, 500])
    def test_other_non_2xx_is_http_error(self, status):
        assert classify_response(status, "Robot Check", PHRASES) == (FetchOutcome.HTTP_ERROR, str(status))

    def test_configured_blocking_statuses(self):
        blocking = {403, 429, 503}
        assert classify_response(429, "", PHRASES, blocking)[0] is FetchOutcome.BLOCKED
        assert classify_response(403, "", PHRASES, blocking)[0] is FetchOutcome.BLOCKED
        assert classify_response(500, "", PHRASES, blocking)[0] is FetchOutcome.HTTP_ERROR

    def test_anti_bot_body(self):
        outcome, detail = classify_response(200, "<h4>Enter the characters you see below</h4>", PHRASES)
        assert outcome is FetchOutcome.ANTI_BOT
        assert detail == "Enter the characters you see below"

    def test_ok(self):
        assert classify_response(200, "<html>fine</html>", PHRASES) == (FetchOutcome.OK, None)
