"""Image generation adapters, one per vendor."""

from providers.images.huggingface import HuggingFaceImageProvider
from providers.images.imagerouter import ImageRouterProvider
from providers.images.pollinations import PollinationsImageProvider
from providers.images.seedream import SeedreamImageProvider
from providers.images.stablehorde import StableHordeProvider

__all__ = [
    "HuggingFaceImageProvider",
    "ImageRouterProvider",
    "PollinationsImageProvider",
    "SeedreamImageProvider",
    "StableHordeProvider",
]
