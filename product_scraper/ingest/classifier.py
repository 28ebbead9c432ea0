"""Page and response classification.

Pure functions only: nothing here touches the network or parses the DOM.
"""

import re
from functools import lru_cache
from typing import Collection, Iterable, Optional, Sequence
from urllib.parse import urlparse

from product_scraper.ingest.models import FetchOutcome, PageType

DEFAULT_DETAIL_PATTERNS = (r"/dp/", r"/gp/product/")
DEFAULT_BLOCKING_STATUSES = frozenset({503})


@lru_cache(maxsize=64)
def _compile(patterns: tuple[str, ...]) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


def classify(url: str, patterns: Sequence[str] = DEFAULT_DETAIL_PATTERNS) -> PageType:
    """
    Decide whether a URL points at a detail page or a listing page.

    Args:
        url: Page URL
        patterns: Regexes matched against the URL path; any match means DETAIL

    Returns:
        PageType.DETAIL or PageType.LISTING
    """
    path = urlparse(url).path or "/"
    for pattern in _compile(tuple(patterns)):
        if pattern.search(path):
            return PageType.DETAIL
    return PageType.LISTING


def find_anti_bot_phrase(body: str, phrases: Iterable[str]) -> Optional[str]:
    """Return the first configured anti-bot phrase found in the body."""
    if not body:
        return None
    for phrase in phrases:
        if phrase and phrase in body:
            return phrase
    return None


def classify_response(
    status_code: int,
    body: str,
    phrases: Iterable[str],
    blocking_statuses: Collection[int] = DEFAULT_BLOCKING_STATUSES,
) -> tuple[FetchOutcome, Optional[str]]:
    """
    Classify a completed HTTP response.

    Args:
        status_code: Final HTTP status
        body: Decoded response body
        phrases: Anti-bot page signatures
        blocking_statuses: Statuses the target uses to refuse scrapers

    Returns:
        (outcome, detail) where detail is the status code text for BLOCKED
        and HTTP_ERROR, the matched phrase for ANTI_BOT and None for OK
    """
    if status_code in blocking_statuses:
        return FetchOutcome.BLOCKED, str(status_code)
    if not 200 <= status_code < 300:
        return FetchOutcome.HTTP_ERROR, str(status_code)
    phrase = find_anti_bot_phrase(body, phrases)
    if phrase is not None:
        return FetchOutcome.ANTI_BOT, phrase
    return FetchOutcome.OK, None
