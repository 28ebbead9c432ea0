"""Browser-like request headers with user-agent rotation."""

import logging
import random
from typing import Optional, Sequence

from product_scraper.config import settings

logger = logging.getLogger(__name__)


class HeaderBuilder:
    """
    Builds the header set sent with every page fetch.

    The user agent is drawn from a fixed pool; everything else is a constant
    desktop-browser navigation profile. Pass a seeded ``random.Random`` to
    make the choice reproducible.
    """

    def __init__(
        self,
        user_agents: Optional[Sequence[str]] = None,
        referer: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ):
        self.user_agents = list(user_agents or settings.user_agents)
        if not self.user_agents:
            raise ValueError("User agent pool is empty")
        self.referer = referer if referer is not None else settings.default_referer
        self.rng = rng or random.Random()

    def choose_user_agent(self) -> str:
        return self.rng.choice(self.user_agents)

    def build_headers(self, user_agent: Optional[str] = None) -> dict[str, str]:
        """
        Build headers for one navigation request.

        Args:
            user_agent: Explicit user agent (a random pool entry when None)

        Returns:
            Dict of HTTP headers
        """
        headers = {
            "User-Agent": user_agent or self.choose_user_agent(),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Accept-Encoding": "gzip, deflate, br",
            "Connection": "keep-alive",
            "Upgrade-Insecure-Requests": "1",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "none",
            "Sec-Fetch-User": "?1",
            "Cache-Control": "max-age=0",
            "sec-ch-ua": '"Chromium";v="122", "Not(A:Brand";v="24", "Google Chrome";v="122"',
            "sec-ch-ua-mobile": "?0",
            "sec-ch-ua-platform": '"Windows"',
            "DNT": "1",
        }
        if self.referer:
            headers["Referer"] = self.referer
        return headers
