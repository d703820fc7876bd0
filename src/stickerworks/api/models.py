"""Pydantic request and response models for the Stickerworks API.

These models define the JSON schema for every API endpoint.  FastAPI uses
them for automatic request validation, serialisation, and OpenAPI
documentation generation.

Models
------
GenerateRequest
    Payload for ``POST /api/generate``.
StickerSummary
    One entry of a published ResultList.
StickerListResponse
    Response for ``GET /api/stickers`` and ``POST /api/generate``.
StatusResponse
    Response for ``GET /api/status``.
"""

from __future__ import annotations

import uuid

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    """Request body for the ``POST /api/generate`` endpoint.

    Attributes:
        prompt: Text describing the sticker.  An empty prompt republishes
            the recents list instead of generating.
    """

    prompt: str = Field(
        default="",
        description="Sticker description.  Empty = show recents.",
        max_length=1000,
    )


class StickerSummary(BaseModel):
    """A sticker as listed by the API.

    Attributes:
        id: UUID of the sticker.
        url: Path of the PNG rendition.
        width: Width of the stored bitmap in pixels.
        height: Height of the stored bitmap in pixels.
    """

    id: uuid.UUID
    url: str
    width: int
    height: int


class StickerListResponse(BaseModel):
    """A published ResultList, newest first.

    Attributes:
        status: ``"recents"``, ``"completed"`` or ``"listed"``.
        total: Number of stickers in ``images``.
        images: Sticker summaries in display order.
        created_id: UUID of the sticker created by this request, if any.
        background_removed: Whether the new sticker's background was removed.
        persisted: Whether the new sticker was written to disk.
    """

    status: str
    total: int
    images: list[StickerSummary]
    created_id: uuid.UUID | None = None
    background_removed: bool | None = None
    persisted: bool | None = None


class StatusResponse(BaseModel):
    """Current orchestrator status.

    Attributes:
        phase: ``"idle"``, ``"generating"`` or ``"removing_background"``.
        in_progress: ``True`` whenever ``phase`` is not ``"idle"``.
        last_event: Kind of the most recent orchestrator event, if any.
        last_error: Diagnostic of the most recent failure, if any.
    """

    phase: str
    in_progress: bool
    last_event: str | None = None
    last_error: str | None = None
