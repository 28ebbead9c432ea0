"""Scraper error taxonomy.

Every failure surfaced by the fetch pipeline or the ingestion boundary is a
:class:`ScraperError`. ``retryable`` tells the caller whether invoking the
same URL again (ideally through another proxy) can succeed.
"""

from typing import Optional


class ScraperError(RuntimeError):
    """Base class for scraper failures."""

    retryable: bool = True


class InvalidUrl(ScraperError):
    """Raised when a caller-supplied URL is malformed or out of scope."""

    retryable = False

    def __init__(self, url: str, reason: str):
        super().__init__(f"Invalid URL '{url}': {reason}")
        self.url = url
        self.reason = reason


class NoProxyAvailable(ScraperError):
    """Raised when the rotation service is unreachable or has no proxy."""

    def __init__(self):
        super().__init__("No proxies available right now")


class Blocked(ScraperError):
    """Raised when the target answered with a blocking status (503 by default)."""

    def __init__(self, status_code: int, url: str = ""):
        super().__init__(f"Blocked by target (HTTP {status_code}) for {url}")
        self.status_code = status_code
        self.url = url


class AntiBotDetected(ScraperError):
    """Raised when a 2xx body matches a known anti-bot page signature."""

    def __init__(self, phrase: str, url: str = ""):
        super().__init__(f"Anti-bot page detected ('{phrase}') for {url}")
        self.phrase = phrase
        self.url = url


class FetchFailed(ScraperError):
    """Raised on transport errors and unexpected (non-blocking) HTTP statuses."""

    def __init__(self, reason: str, url: str = "", status_code: Optional[int] = None):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.reason = reason
        self.url = url
        self.status_code = status_code


class PersistError(ScraperError):
    """One record could not be saved. Collected, never raised out of a batch."""

    retryable = False

    def __init__(self, source_url: str, title: str, reason: str):
        super().__init__(f"Failed to save product: {title} - {reason}")
        self.source_url = source_url
        self.title = title
        self.reason = reason
