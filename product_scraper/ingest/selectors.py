"""Selector strategies and field resolvers.

A strategy is a small callable ``(node) -> value | None``. A
:class:`FieldResolver` tries its strategies in order and returns the first
value that survives validation, so later strategies are never evaluated once
an earlier one succeeds.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar
from urllib.parse import urljoin

from selectolax.parser import Node

from product_scraper.ingest.site_profile import FieldSelectors, SiteProfile

logger = logging.getLogger(__name__)

T = TypeVar("T")

Strategy = Callable[[Node], Optional[str]]

_NON_PRICE_CHARS = re.compile(r"[^0-9.]")
_IGNORED_LINK_PREFIXES = ("data:", "javascript:", "#")


def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace runs and trim."""
    if not text:
        return ""
    return " ".join(text.split())


def parse_price(text: Optional[str]) -> Optional[Decimal]:
    """
    Parse a price from display text.

    Everything but digits and the decimal point is dropped, the rest is read
    as a Decimal. Only strictly positive values are accepted.

    Args:
        text: Raw price text, e.g. "$1,299.99"

    Returns:
        Decimal price or None if the text holds no usable price
    """
    if not text:
        return None
    cleaned = _NON_PRICE_CHARS.sub("", text)
    if not cleaned:
        return None
    try:
        price = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price


def absolute_url(href: Optional[str], origin: str) -> Optional[str]:
    """Resolve ``href`` against the site origin. Absolute URLs pass through."""
    if not href:
        return None
    href = href.strip()
    if not href or href.lower().startswith(_IGNORED_LINK_PREFIXES):
        return None
    return urljoin(origin.rstrip("/") + "/", href)


@dataclass(frozen=True)
class TextStrategy:
    """Text content of the first element matching ``selector``."""

    selector: str

    def __call__(self, node: Node) -> Optional[str]:
        element = node.css_first(self.selector)
        if element is None:
            return None
        return clean_text(element.text(separator=" ")) or None


@dataclass(frozen=True)
class AttributeStrategy:
    """First usable attribute value of the first element matching ``selector``."""

    selector: str
    attributes: tuple[str, ...] = ("href",)

    def __call__(self, node: Node) -> Optional[str]:
        element = node.css_first(self.selector)
        if element is None:
            return None
        attrs = element.attributes
        for name in self.attributes:
            value = (attrs.get(name) or "").strip()
            if value and not value.lower().startswith(_IGNORED_LINK_PREFIXES):
                return value
        return None


@dataclass(frozen=True)
class HeuristicTitleStrategy:
    """Last resort: first visible text line with a plausible title length."""

    min_length: int = 10
    max_length: int = 200

    def __call__(self, node: Node) -> Optional[str]:
        for line in node.text(separator="\n").splitlines():
            line = clean_text(line)
            if self.min_length < len(line) < self.max_length:
                return line
        return None


class FieldResolver(Generic[T]):
    """Ordered strategy chain for one field."""

    def __init__(
        self,
        name: str,
        strategies: Sequence[Callable[[Node], Any]],
        transform: Optional[Callable[[Any], Optional[T]]] = None,
    ):
        self.name = name
        self.strategies = list(strategies)
        self.transform = transform

    def resolve(self, node: Node) -> Optional[T]:
        for index, strategy in enumerate(self.strategies):
            try:
                raw = strategy(node)
                if raw is None or raw == "":
                    continue
                value = self.transform(raw) if self.transform else raw
            except Exception as e:
                logger.debug(f"{self.name} strategy {index + 1}/{len(self.strategies)} error: {strategy} - {e}")
                continue
            if value is not None:
                return value
        return None

    def __repr__(self) -> str:
        return f"FieldResolver({self.name!r}, {len(self.strategies)} strategies)"


@dataclass
class FieldResolvers:
    """The resolvers used for one page type."""

    title: FieldResolver[str]
    price: FieldResolver[Decimal]
    image_url: FieldResolver[str]
    product_url: FieldResolver[str]


def build_resolvers(selectors: FieldSelectors, profile: SiteProfile) -> FieldResolvers:
    """Turn a selector table into resolver chains anchored at the profile origin."""

    def to_absolute(href: str) -> Optional[str]:
        return absolute_url(href, profile.origin)

    image_attributes = tuple(selectors.image_attributes) or ("src",)

    return FieldResolvers(
        title=FieldResolver(
            "title",
            [TextStrategy(s) for s in selectors.title]
            + [HeuristicTitleStrategy(profile.title_min_length, profile.title_max_length)],
        ),
        price=FieldResolver(
            "price",
            [TextStrategy(s) for s in selectors.price],
            transform=parse_price,
        ),
        image_url=FieldResolver(
            "image_url",
            [AttributeStrategy(s, image_attributes) for s in selectors.image],
            transform=to_absolute,
        ),
        product_url=FieldResolver(
            "product_url",
            [AttributeStrategy(s, ("href",)) for s in selectors.product_url],
            transform=to_absolute,
        ),
    )
