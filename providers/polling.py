"""Bounded polling for asynchronous-job providers.

A job is submitted elsewhere; :func:`poll_job` then checks it on a fixed
interval up to a maximum number of attempts.  The attempt budget acts as
the job's deadline: exhausting it raises :class:`ProviderTimeoutError`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from errors import ProviderTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PollBudget:
    interval: float = 2.0
    max_attempts: int = 60

    @property
    def deadline_seconds(self) -> float:
        return self.interval * self.max_attempts


async def poll_job(
    check: Callable[[int], Awaitable[T | None]],
    budget: PollBudget,
    *,
    provider: str,
    model: str = "",
    job_id: str = "",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Call ``check(attempt)`` after each interval until it returns non-None.

    ``check`` signals a terminal job failure by raising; any exception it
    raises propagates unchanged.
    """
    for attempt in range(budget.max_attempts):
        await sleep(budget.interval)
        result = await check(attempt)
        if result is not None:
            return result
        if attempt % 10 == 0:
            logger.info("Still waiting for %s job %s (attempt %d)", provider, job_id, attempt)

    raise ProviderTimeoutError(
        provider,
        f"Generation timed out after {budget.max_attempts} checks "
        f"({budget.deadline_seconds:.0f}s)",
        model=model,
        job_id=job_id,
    )
