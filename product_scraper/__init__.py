"""Product scraper: proxy-routed extraction of product listings."""

__version__ = "0.1.0"
