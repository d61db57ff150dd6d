"""Health check endpoint."""

from fastapi import APIRouter

from providers.registry import get_provider_registry

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health():
    """Liveness plus the names of the providers that can be called right now."""
    registry = get_provider_registry()
    return {
        "status": "healthy",
        "textProviders": [p.name for p in registry.text_providers()],
        "imageProviders": [p.name for p in registry.image_providers()],
    }
