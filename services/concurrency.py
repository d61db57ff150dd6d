"""Global concurrency controls for outbound LLM calls and heavy endpoints.

Prevents overwhelming provider rate limits under load.
Uses asyncio.Semaphore to cap the number of *concurrent* outbound LLM
requests per worker process.

The middleware uses a pure ASGI implementation (not BaseHTTPMiddleware).
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Coroutine

from starlette.types import ASGIApp, Receive, Scope, Send

from config.settings import get_settings

logger = logging.getLogger(__name__)

# ── Global LLM semaphore ─────────────────────────────────────

_llm_semaphore: asyncio.Semaphore | None = None


def _get_semaphore() -> asyncio.Semaphore:
    """Lazy-init to ensure semaphore is bound to the running event loop."""
    global _llm_semaphore
    if _llm_semaphore is None:
        limit = get_settings().max_concurrent_llm
        _llm_semaphore = asyncio.Semaphore(limit)
        logger.info("LLM concurrency semaphore initialized (max=%d)", limit)
    return _llm_semaphore


async def rate_limited_llm_call(
    func: Callable[..., Coroutine[Any, Any, Any]],
    *args: Any,
    **kwargs: Any,
) -> Any:
    """Execute an async LLM function with concurrency limiting.

    Usage::

        result = await rate_limited_llm_call(litellm.acompletion, model=..., messages=...)
    """
    sem = _get_semaphore()
    async with sem:
        return await func(*args, **kwargs)


# ── Heavy endpoint concurrency middleware (pure ASGI) ─────────
# Limits concurrent lesson-creation requests.  Requests over the limit
# receive 503 instead of queuing forever.

_heavy_semaphore: asyncio.Semaphore | None = None

# (method, path) pairs that start a generation run
_HEAVY_ROUTES = frozenset({
    ("POST", "/api/lessons"),
})


def _get_heavy_semaphore() -> asyncio.Semaphore:
    global _heavy_semaphore
    if _heavy_semaphore is None:
        limit = get_settings().max_concurrent_lessons
        _heavy_semaphore = asyncio.Semaphore(limit)
        logger.info("Lesson creation semaphore initialized (max=%d)", limit)
    return _heavy_semaphore


class ConcurrencyLimitMiddleware:
    """Pure ASGI middleware — reject heavy requests when the worker is at capacity.

    Returns HTTP 503 with Retry-After header for overloaded endpoints.
    Lightweight endpoints (health, listing, traces) pass through unaffected.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        route = (scope.get("method", ""), scope.get("path", "").rstrip("/"))
        if route not in _HEAVY_ROUTES:
            await self.app(scope, receive, send)
            return

        sem = _get_heavy_semaphore()

        if sem.locked():
            logger.warning("Concurrency limit reached for %s — returning 503", route[1])
            body = json.dumps(
                {"detail": "Server busy — too many concurrent requests. Please retry."}
            ).encode()
            await send({
                "type": "http.response.start",
                "status": 503,
                "headers": [
                    (b"content-type", b"application/json"),
                    (b"retry-after", b"5"),
                ],
            })
            await send({
                "type": "http.response.body",
                "body": body,
            })
            return

        async with sem:
            await self.app(scope, receive, send)
