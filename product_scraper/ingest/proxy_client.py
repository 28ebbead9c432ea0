"""Client for the external proxy rotation service.

Protocol:
    GET  {base}/api/proxy/next     -> 200 {"proxy": {"host", "port", ...}} (or the bare object)
    POST {base}/api/proxy/success  <- lease payload
    POST {base}/api/proxy/failed   <- lease payload

``next()`` returns None instead of raising when no lease can be obtained.
The two report calls are fire-and-forget: delivery problems are logged and
reported through the return value, never raised, so they cannot change the
outcome of the scrape that triggered them.
"""

import logging
from typing import Optional

import httpx

from product_scraper import metrics
from product_scraper.config import settings
from product_scraper.ingest.models import ProxyLease

logger = logging.getLogger(__name__)


class ProxyClient:
    """Stateless next/success/failed client. Safe to share between concurrent scrapes."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.proxy_rotator_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.proxy_request_timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def next(self) -> Optional[ProxyLease]:
        """
        Request the next proxy from the rotator.

        Returns:
            ProxyLease, or None when the rotator is unreachable, answers with a
            non-2xx status or returns no usable proxy
        """
        try:
            async with self._client() as client:
                response = await client.get("/api/proxy/next")
        except httpx.HTTPError as e:
            logger.error(f"Error getting proxy: {type(e).__name__}: {e}")
            metrics.proxy_leases_total.labels(status="unreachable").inc()
            return None

        if not response.is_success:
            logger.error(
                f"Proxy rotator failed with status {response.status_code}: {response.text[:200]}"
            )
            metrics.proxy_leases_total.labels(status="unavailable").inc()
            return None

        try:
            data = response.json()
        except ValueError:
            logger.error(f"Proxy rotator returned invalid JSON: {response.text[:200]}")
            metrics.proxy_leases_total.labels(status="malformed").inc()
            return None

        payload = data.get("proxy", data) if isinstance(data, dict) else None
        lease = ProxyLease.from_payload(payload)
        if lease is None:
            logger.error(f"Proxy rotator response has no proxy: {str(data)[:200]}")
            metrics.proxy_leases_total.labels(status="malformed").inc()
            return None

        metrics.proxy_leases_total.labels(status="leased").inc()
        logger.debug(f"Leased proxy {lease.host}:{lease.port}")
        return lease

    async def report_success(self, lease: ProxyLease) -> bool:
        """Tell the rotator the lease worked. Best-effort, never raises."""
        return await self._report("success", lease)

    async def report_failure(self, lease: ProxyLease) -> bool:
        """Tell the rotator the lease failed. Best-effort, never raises."""
        return await self._report("failed", lease)

    async def _report(self, outcome: str, lease: ProxyLease) -> bool:
        delivered = False
        try:
            async with self._client() as client:
                response = await client.post(f"/api/proxy/{outcome}", json=lease.to_payload())
            if response.is_success:
                delivered = True
            else:
                logger.warning(
                    f"Couldn't report proxy {outcome} for {lease.host}:{lease.port}: "
                    f"HTTP {response.status_code}"
                )
        except httpx.HTTPError as e:
            logger.warning(
                f"Couldn't report proxy {outcome} for {lease.host}:{lease.port}: "
                f"{type(e).__name__}: {e}"
            )

        metrics.proxy_reports_total.labels(outcome=outcome, delivered=str(delivered).lower()).inc()
        return delivered
