"""Provider adapters — uniform wrappers around external generation services."""

from providers.base import ImageProvider, ProviderAdapter, TextProvider
from providers.registry import ProviderRegistry, get_provider_registry

__all__ = [
    "ImageProvider",
    "ProviderAdapter",
    "ProviderRegistry",
    "TextProvider",
    "get_provider_registry",
]
