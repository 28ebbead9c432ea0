"""Prometheus metrics for the product scraper."""

from prometheus_client import Counter, Histogram, Info

# Application info
app_info = Info("product_scraper", "Product scraper application info")
app_info.info({"version": "0.1.0", "name": "product-scraper"})

# Scrape metrics
scrape_requests_total = Counter(
    "scrape_requests_total",
    "Total number of scrape calls by outcome",
    ["site", "outcome"],
)

scrape_duration_seconds = Histogram(
    "scrape_duration_seconds",
    "Time spent in one scrape call, pacing included",
    ["site"],
    buckets=[1.0, 2.0, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0],
)

scrape_empty_extractions_total = Counter(
    "scrape_empty_extractions_total",
    "Successful fetches that yielded zero records (likely selector drift)",
    ["site", "page_type"],
)

records_extracted_total = Counter(
    "records_extracted_total",
    "Total number of product records extracted",
    ["site", "page_type"],
)

# Proxy metrics
proxy_leases_total = Counter(
    "proxy_leases_total",
    "Proxy lease requests against the rotation service",
    ["status"],
)

proxy_reports_total = Counter(
    "proxy_reports_total",
    "Proxy outcome reports sent to the rotation service",
    ["outcome", "delivered"],
)

# Persistence metrics
records_persisted_total = Counter(
    "records_persisted_total",
    "Product records written to the store",
    ["site", "operation"],
)
