"""Adapter-local request throttle."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class RequestThrottle:
    """Enforce a minimum interval between submissions of one adapter instance.

    The last-submission timestamp is read and written under an
    ``asyncio.Lock`` so that two concurrent callers cannot both pass the
    check before either records its submission.  The lock is held while
    waiting, which serializes submissions of the same adapter.
    """

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_submission: float | None = None

    async def wait(self) -> float:
        """Block until a submission is allowed; returns seconds waited."""
        async with self._lock:
            waited = 0.0
            if self._last_submission is not None:
                elapsed = self._clock() - self._last_submission
                if elapsed < self.min_interval:
                    waited = self.min_interval - elapsed
                    logger.debug("Rate limiting: waiting %.2fs before submitting", waited)
                    await self._sleep(waited)
            self._last_submission = self._clock()
            return waited
