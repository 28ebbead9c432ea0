"""Product extraction from listing and detail pages."""

import logging
from typing import Optional

from selectolax.parser import HTMLParser, Node

from product_scraper.ingest.classifier import classify
from product_scraper.ingest.models import PageType, ProductRecord
from product_scraper.ingest.selectors import FieldResolvers, build_resolvers
from product_scraper.ingest.site_profile import SiteProfile

logger = logging.getLogger(__name__)

_INVISIBLE_TAGS = ["script", "style", "noscript", "template"]


class ContentExtractor:
    """
    Extracts normalized product records from fetched HTML.

    Listing pages go through node discovery (first container selector with
    at least one match wins) and every card is resolved on its own; one
    broken card is logged and skipped. Detail pages resolve the same four
    fields against the whole document.
    """

    def __init__(
        self,
        profile: SiteProfile,
        listing_resolvers: Optional[FieldResolvers] = None,
        detail_resolvers: Optional[FieldResolvers] = None,
    ):
        self.profile = profile
        self.listing = listing_resolvers or build_resolvers(profile.listing, profile)
        self.detail = detail_resolvers or build_resolvers(profile.detail, profile)

    def page_type(self, url: str) -> PageType:
        return classify(url, self.profile.detail_url_patterns)

    def extract(self, html: str, source_url: str) -> list[ProductRecord]:
        """Extract records, picking the routine from the URL shape."""
        if self.page_type(source_url) is PageType.DETAIL:
            record = self.extract_detail(html, source_url)
            return [record] if record else []
        return self.extract_listing(html, source_url)

    @staticmethod
    def _parse(html: str) -> HTMLParser:
        tree = HTMLParser(html or "")
        tree.strip_tags(_INVISIBLE_TAGS)
        return tree

    def extract_detail(self, html: str, source_url: str) -> Optional[ProductRecord]:
        """
        Extract the single product described by a detail page.

        The record's source_url is the requested URL. Price is optional
        unless ``profile.require_price_on_detail`` is set.

        Args:
            html: Page HTML
            source_url: URL the page was fetched from

        Returns:
            ProductRecord or None when the title (or a required price) is missing
        """
        tree = self._parse(html)
        root = tree.body or tree.root
        if root is None:
            logger.warning(f"Empty document for {source_url}")
            return None

        title = self.detail.title.resolve(root)
        if not title:
            logger.warning(f"No title found on detail page {source_url}")
            return None

        price = self.detail.price.resolve(root)
        if price is None and self.profile.require_price_on_detail:
            logger.warning(f"No price found on detail page {source_url}, skipping")
            return None

        return ProductRecord(
            title=title,
            price=price,
            image_url=self.detail.image_url.resolve(root),
            source_url=source_url,
            source_website=self.profile.source_website,
        )

    def extract_listing(self, html: str, source_url: str) -> list[ProductRecord]:
        """
        Extract every complete product card from a listing page.

        Args:
            html: Page HTML
            source_url: URL the page was fetched from (for logging)

        Returns:
            Records with title and URL present (and price, when required),
            deduplicated by source_url in page order
        """
        tree = self._parse(html)
        nodes = self.discover_nodes(tree)

        records: list[ProductRecord] = []
        seen: set[str] = set()
        skipped = 0
        for index, node in enumerate(nodes):
            try:
                record = self._parse_listing_node(node)
            except Exception as e:
                logger.error(f"Error parsing product node {index} on {source_url}: {e}")
                record = None

            if record is None:
                skipped += 1
                continue
            if record.source_url in seen:
                continue
            seen.add(record.source_url)
            records.append(record)

        logger.info(
            f"Extracted {len(records)} products from {source_url} "
            f"({len(nodes)} nodes, {skipped} skipped)"
        )
        return records

    def discover_nodes(self, tree: HTMLParser) -> list[Node]:
        """Return the matches of the first container selector that finds any."""
        for selector in self.profile.listing_containers:
            try:
                nodes = tree.css(selector)
            except Exception as e:
                logger.debug(f"Container selector '{selector}' error: {e}")
                continue
            logger.debug(f"Selector '{selector}' found {len(nodes)} items")
            if nodes:
                return nodes
        return []

    def _parse_listing_node(self, node: Node) -> Optional[ProductRecord]:
        title = self.listing.title.resolve(node)
        if not title:
            return None

        price = self.listing.price.resolve(node)
        if price is None and self.profile.require_price_on_listing:
            logger.debug(f"No price found for product: {title}")
            return None

        product_url = self.listing.product_url.resolve(node)
        if not product_url:
            logger.warning(f"No URL found for product: {title}")
            return None

        return ProductRecord(
            title=title,
            price=price,
            image_url=self.listing.image_url.resolve(node),
            source_url=product_url,
            source_website=self.profile.source_website,
        )
