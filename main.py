"""FastAPI entry point for the lesson generation service."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import litellm
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from config.settings import get_settings
from providers.registry import get_provider_registry
from services.asset_store import LocalAssetStore, get_asset_store
from services.concurrency import ConcurrencyLimitMiddleware
from services.lesson_store import RedisLessonStore, get_lesson_store
from services.middleware import RequestIdLogFilter, RequestIdMiddleware
from services.trace_store import RedisTraceStore, get_trace_store

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s",
)
for _handler in logging.getLogger().handlers:
    _handler.addFilter(RequestIdLogFilter())
logger = logging.getLogger(__name__)

# ── Global LiteLLM settings ──────────────────────────────────
litellm.request_timeout = settings.llm_request_timeout


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle — build providers up front, close them on exit."""
    registry = get_provider_registry()
    lesson_store = get_lesson_store()
    trace_store = get_trace_store()
    logger.info(
        "Lesson service ready — text=%s image=%s",
        [p.name for p in registry.text_providers()],
        [p.name for p in registry.image_providers()],
    )

    yield

    await registry.aclose()
    if isinstance(lesson_store, RedisLessonStore):
        await lesson_store.close()
    if isinstance(trace_store, RedisTraceStore):
        await trace_store.close()


app = FastAPI(
    title="Lesson Forge",
    description="Educational lesson generation with multi-provider text and image fallback",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware stack (outermost first) ─────────────────────────
# Order matters: CORS → RequestId → ConcurrencyLimit → route handler
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(ConcurrencyLimitMiddleware)

# ── Register routers ────────────────────────────────────────
from api.health import router as health_router  # noqa: E402
from api.image_traces import router as image_traces_router  # noqa: E402
from api.lessons import router as lessons_router  # noqa: E402
from api.providers import router as providers_router  # noqa: E402
from api.traces import router as traces_router  # noqa: E402

app.include_router(health_router)
app.include_router(providers_router)
app.include_router(lessons_router)
app.include_router(traces_router)
app.include_router(image_traces_router)

# ── Uploaded images ─────────────────────────────────────────
_assets = get_asset_store()
if isinstance(_assets, LocalAssetStore):
    Path(_assets.root).mkdir(parents=True, exist_ok=True)
    app.mount(settings.media_route, StaticFiles(directory=_assets.root), name="media")


if __name__ == "__main__":
    if settings.debug:
        # Development: single worker with reload
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.service_port,
            reload=True,
        )
    else:
        # Production: prefer gunicorn main:app -c deploy/gunicorn.conf.py
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.service_port,
            workers=4,
            timeout_keep_alive=120,
        )
