"""Stickerworks: FastAPI application.

This module defines the application factory, all REST API routes, and the
``main()`` CLI function that launches the uvicorn server.  The API is a thin
presentation layer over :class:`~stickerworks.core.orchestrator.GenerationOrchestrator`.

Architecture
------------
- **Configuration** comes from :class:`~stickerworks.core.config.StickerworksConfig`.
- **Network clients** share a single ``httpx.AsyncClient`` created in the
  lifespan handler and closed on shutdown.
- **Persistence** is the orchestrator's :class:`~stickerworks.core.image_store.ImageStore`;
  recents are loaded once at startup.  Disk and PNG work runs in a worker
  thread via ``asyncio.to_thread``.
- **Status** is tracked by :class:`StatusBoard`, which listens to the
  orchestrator's events.

Endpoints
---------
========  ================================  ====================================
Method    Path                              Purpose
========  ================================  ====================================
GET       ``/api/status``                   Current phase and last failure
GET       ``/api/stickers``                 Published ResultList
POST      ``/api/generate``                 Generate a sticker (or show recents)
GET       ``/api/stickers/{id}``            Stored PNG of a sticker
POST      ``/api/stickers/{id}/select``     Export a sticker for sharing
========  ================================  ====================================

Usage
-----
CLI (installed entry point)::

    stickerworks

Direct invocation::

    python -m stickerworks.api.main
"""

from __future__ import annotations

import asyncio
import io
import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException
from fastapi.responses import Response

from stickerworks import __version__
from stickerworks.api.models import (
    GenerateRequest,
    StatusResponse,
    StickerListResponse,
    StickerSummary,
)
from stickerworks.core.background_removal import BackgroundRemovalClient
from stickerworks.core.config import StickerworksConfig
from stickerworks.core.generation_client import ImageGenerationClient
from stickerworks.core.image_store import ImageStore
from stickerworks.core.models import EventKind, GeneratedImage, OrchestratorEvent
from stickerworks.core.orchestrator import GenerationOrchestrator

logger = logging.getLogger(__name__)


class StatusBoard:
    """Event listener that remembers the latest orchestrator signals."""

    def __init__(self) -> None:
        self.last_event: EventKind | None = None
        self.last_error: str | None = None

    def __call__(self, event: OrchestratorEvent) -> None:
        self.last_event = event.kind
        if event.kind is EventKind.STARTED:
            self.last_error = None
        elif event.kind is EventKind.FAILED:
            self.last_error = str(event.error) if event.error else "Generation aborted unexpectedly"


def _summarise(images: tuple[GeneratedImage, ...]) -> list[StickerSummary]:
    return [
        StickerSummary(
            id=image.id,
            url=f"/api/stickers/{image.id}",
            width=image.bitmap.width,
            height=image.bitmap.height,
        )
        for image in images
    ]


def _encode_png(image: GeneratedImage) -> bytes:
    buffer = io.BytesIO()
    image.bitmap.save(buffer, format="PNG")
    return buffer.getvalue()


def _png_response(data: bytes) -> Response:
    return Response(content=data, media_type="image/png")


def create_app(
    settings: StickerworksConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Configuration to use.  Defaults to the global ``config``.
        transport: Optional ``httpx`` transport for the outbound client.
            Tests pass an ``httpx.MockTransport`` here.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        from stickerworks.core.config import config as settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Create the HTTP client and orchestrator; close the client on shutdown."""
        # --- Startup -------------------------------------------------------
        http_client = httpx.AsyncClient(transport=transport)
        status = StatusBoard()
        orchestrator = GenerationOrchestrator(
            store=ImageStore(settings.stickers_dir),
            generator=ImageGenerationClient(
                http_client,
                settings.generation_url,
                token=settings.hf_token,
                style_suffix=settings.style_suffix,
                timeout=settings.generation_timeout,
            ),
            remover=BackgroundRemovalClient(
                http_client,
                settings.removebg_url,
                api_key=settings.removebg_api_key,
                timeout=settings.removal_timeout,
            ),
            on_event=status,
            export_max_dimension=settings.sticker_max_dimension,
        )
        await asyncio.to_thread(orchestrator.load_recents)

        app.state.status = status
        app.state.orchestrator = orchestrator
        logger.info("Orchestrator initialised.")

        yield  # Application runs here.

        # --- Shutdown ------------------------------------------------------
        await http_client.aclose()
        logger.info("HTTP client closed on shutdown.")

    app = FastAPI(
        title="Stickerworks",
        description="Prompt-to-sticker generation with background removal.",
        version=__version__,
        lifespan=lifespan,
    )

    def _lookup(image_id: uuid.UUID) -> GeneratedImage:
        orchestrator: GenerationOrchestrator = app.state.orchestrator
        image = orchestrator.find(image_id)
        if image is None:
            raise HTTPException(status_code=404, detail="Sticker not found")
        return image

    # -----------------------------------------------------------------------
    # Routes.
    # -----------------------------------------------------------------------

    @app.get("/api/status", response_model=StatusResponse)
    async def get_status() -> StatusResponse:
        """Return the current phase and the most recent failure, if any."""
        orchestrator: GenerationOrchestrator = app.state.orchestrator
        status: StatusBoard = app.state.status
        return StatusResponse(
            phase=orchestrator.phase.value,
            in_progress=orchestrator.in_progress,
            last_event=status.last_event.value if status.last_event else None,
            last_error=status.last_error,
        )

    @app.get("/api/stickers", response_model=StickerListResponse)
    async def list_stickers() -> StickerListResponse:
        """Return the currently published ResultList, newest first."""
        orchestrator: GenerationOrchestrator = app.state.orchestrator
        images = orchestrator.results
        return StickerListResponse(status="listed", total=len(images), images=_summarise(images))

    @app.post("/api/generate", response_model=StickerListResponse)
    async def generate_sticker(req: GenerateRequest) -> StickerListResponse:
        """Generate a sticker from a prompt.

        An empty prompt republishes the recents list.

        Raises:
            HTTPException: 502 when the generation service fails.  The
                published ResultList is left unchanged.
        """
        orchestrator: GenerationOrchestrator = app.state.orchestrator
        outcome = await orchestrator.submit(req.prompt)

        if outcome.status == "failed":
            raise HTTPException(status_code=502, detail=f"Generation failed: {outcome.error}")

        return StickerListResponse(
            status=outcome.status,
            total=len(outcome.images),
            images=_summarise(outcome.images),
            created_id=outcome.created.id if outcome.created else None,
            background_removed=outcome.background_removed if outcome.created else None,
            persisted=outcome.persisted if outcome.created else None,
        )

    @app.get("/api/stickers/{image_id}")
    async def get_sticker(image_id: uuid.UUID) -> Response:
        """Return the full-size PNG of a sticker."""
        image = _lookup(image_id)
        return _png_response(await asyncio.to_thread(_encode_png, image))

    @app.post("/api/stickers/{image_id}/select")
    async def select_sticker(image_id: uuid.UUID) -> Response:
        """Select a sticker and return its resized PNG export."""
        orchestrator: GenerationOrchestrator = app.state.orchestrator
        image = _lookup(image_id)
        return _png_response(await asyncio.to_thread(orchestrator.select, image))

    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~stickerworks.core.config.config` (which
    loads from ``STICKERWORKS_SERVER_HOST`` and ``STICKERWORKS_SERVER_PORT``
    environment variables).  Defaults to ``127.0.0.1:7860``.

    This function is registered as the ``stickerworks`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    from stickerworks.core.config import config

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "stickerworks.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
