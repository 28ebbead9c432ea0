"""Data types shared by the scraping engine."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from urllib.parse import quote


class PageType(str, Enum):
    """Shape of a target page, decided from its URL."""

    DETAIL = "detail"
    LISTING = "listing"


class FetchOutcome(str, Enum):
    """Classification of a single HTTP round trip."""

    OK = "ok"
    BLOCKED = "blocked"
    ANTI_BOT = "anti_bot"
    HTTP_ERROR = "http_error"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class ProductRecord:
    """One product extracted from a page."""

    title: str
    price: Optional[Decimal]
    image_url: Optional[str]
    source_url: str
    source_website: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "price": float(self.price) if self.price is not None else None,
            "image_url": self.image_url,
            "source_url": self.source_url,
            "source_website": self.source_website,
        }


@dataclass(frozen=True)
class ProxyLease:
    """Proxy assignment borrowed from the rotation service for one fetch."""

    host: str
    port: int
    protocol: str = "http"
    username: Optional[str] = None
    password: Optional[str] = None
    payload: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def url(self) -> str:
        """Get proxy URL for httpx."""
        if self.username and self.password:
            credentials = f"{quote(self.username, safe='')}:{quote(self.password, safe='')}"
            return f"{self.protocol}://{credentials}@{self.host}:{self.port}"
        return f"{self.protocol}://{self.host}:{self.port}"

    def to_payload(self) -> dict[str, Any]:
        """Body posted back to the rotator when reporting an outcome."""
        if self.payload:
            return dict(self.payload)
        body: dict[str, Any] = {"host": self.host, "port": self.port, "protocol": self.protocol}
        if self.username:
            body["username"] = self.username
        if self.password:
            body["password"] = self.password
        return body

    @classmethod
    def from_payload(cls, data: Any) -> Optional["ProxyLease"]:
        """Build a lease from a rotator payload, or None if host/port are missing."""
        if not isinstance(data, dict):
            return None
        host = data.get("host")
        port = data.get("port")
        if not host or port in (None, ""):
            return None
        try:
            port = int(port)
        except (TypeError, ValueError):
            return None
        return cls(
            host=str(host),
            port=port,
            protocol=str(data.get("protocol") or "http"),
            username=data.get("username") or None,
            password=data.get("password") or None,
            payload=dict(data),
        )


@dataclass
class FetchAttempt:
    """One HTTP round trip inside a scrape call. Never persisted."""

    url: str
    lease: ProxyLease
    user_agent: str
    status_code: Optional[int] = None
    outcome: Optional[FetchOutcome] = None
    detail: Optional[str] = None
    final_url: Optional[str] = None
    elapsed: float = 0.0
