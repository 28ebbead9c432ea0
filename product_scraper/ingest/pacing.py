"""Human-like pacing before page fetches."""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

from product_scraper.config import settings

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class Pacer:
    """
    Sleeps a random interval before each fetch so requests never land on a
    fixed cadence. The wait is local to the calling coroutine; no lock or
    shared slot is held while sleeping.
    """

    def __init__(
        self,
        min_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        rng: Optional[random.Random] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.min_delay = settings.min_page_delay_seconds if min_delay is None else min_delay
        self.max_delay = settings.max_page_delay_seconds if max_delay is None else max_delay
        if self.min_delay < 0 or self.max_delay < self.min_delay:
            raise ValueError(
                f"Invalid pacing range: min={self.min_delay}, max={self.max_delay}"
            )
        self.rng = rng or random.Random()
        self._sleep = sleep

    def next_delay(self) -> float:
        return self.rng.uniform(self.min_delay, self.max_delay)

    async def wait(self) -> float:
        """Sleep for a random delay and return how long it was."""
        delay = self.next_delay()
        logger.debug(f"Pacing delay {delay:.2f}s")
        if delay > 0:
            await self._sleep(delay)
        return delay
