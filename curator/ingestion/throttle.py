"""Per-source request pacing."""

import asyncio
import time
from typing import Awaitable, Callable, Optional


class SourceThrottle:
    """Enforce a minimum interval between requests to one source.

    One throttle is created per source run and passed to every fetch for that
    source. Concurrent callers are serialized on an internal lock, so the
    interval holds even if fetches for the same source overlap.
    """

    def __init__(
        self,
        min_interval: float = 2.0,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._lock = asyncio.Lock()
        self._last_request: Optional[float] = None

    async def wait(self) -> float:
        """Wait until the next request is allowed; return seconds waited."""
        async with self._lock:
            waited = 0.0
            if self._last_request is not None:
                remaining = self.min_interval - (self._clock() - self._last_request)
                if remaining > 0:
                    await self._sleep(remaining)
                    waited = remaining
            self._last_request = self._clock()
            return waited
