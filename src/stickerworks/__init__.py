"""Stickerworks - prompt-to-sticker generation with background removal."""

__version__ = "0.1.0"

from stickerworks.core.config import StickerworksConfig, config
from stickerworks.core.orchestrator import GenerationOrchestrator

__all__ = [
    "GenerationOrchestrator",
    "StickerworksConfig",
    "config",
]
