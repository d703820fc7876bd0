"""Core functionality for sticker generation.

This module provides the core components of the Stickerworks generator:

- **ImageGenerationClient**: Text-to-image client for a hosted inference endpoint
- **BackgroundRemovalClient**: Multipart client for a background-removal service
- **ImageStore**: One-PNG-per-sticker directory store
- **GenerationOrchestrator**: Sequences generation, removal, persistence and publication
- **StickerworksConfig**: Configuration management using Pydantic Settings
- **config**: Global configuration instance (loads from environment variables)

Architecture Overview
---------------------
The core module follows a layered architecture:

1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - All settings prefixed with STICKERWORKS_ in .env files

2. **Client Layer** (generation_client.py, background_removal.py):
   - One async HTTP round trip per call, no retries
   - Failures returned as typed ``ClientResult`` values

3. **Storage Layer** (image_store.py):
   - Directory listing is the index; files are named ``<uuid>.png``

4. **Orchestration Layer** (orchestrator.py):
   - Owns the recents list and the in-progress phase
   - Reports progress through an injected event callback

Usage Example
-------------
    import httpx

    from stickerworks.core import (
        BackgroundRemovalClient,
        GenerationOrchestrator,
        ImageGenerationClient,
        ImageStore,
        config,
    )

    async with httpx.AsyncClient() as http:
        orchestrator = GenerationOrchestrator(
            store=ImageStore(config.stickers_dir),
            generator=ImageGenerationClient(http, config.generation_url, token=config.hf_token),
            remover=BackgroundRemovalClient(http, config.removebg_url, api_key=config.removebg_api_key),
        )
        orchestrator.load_recents()
        outcome = await orchestrator.submit("a sleepy cat")
"""

from .background_removal import BackgroundRemovalClient
from .config import StickerworksConfig, config
from .generation_client import ImageGenerationClient
from .image_store import ImageStore, ImageStoreError
from .models import (
    ClientError,
    ClientResult,
    ErrorKind,
    EventKind,
    GeneratedImage,
    OrchestratorEvent,
    Phase,
    SubmitOutcome,
)
from .orchestrator import GenerationOrchestrator

__all__ = [
    "BackgroundRemovalClient",
    "ClientError",
    "ClientResult",
    "ErrorKind",
    "EventKind",
    "GeneratedImage",
    "GenerationOrchestrator",
    "ImageGenerationClient",
    "ImageStore",
    "ImageStoreError",
    "OrchestratorEvent",
    "Phase",
    "StickerworksConfig",
    "SubmitOutcome",
    "config",
]
