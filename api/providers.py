"""Provider listing endpoint."""

from fastapi import APIRouter

from providers.registry import get_provider_registry

router = APIRouter(prefix="/api", tags=["providers"])


@router.get("/providers")
async def list_providers():
    """Every configured adapter in priority order, with its availability."""
    return get_provider_registry().describe()
