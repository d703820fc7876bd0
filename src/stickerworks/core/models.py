"""Core data types shared by the store, the network clients and the orchestrator.

Types
-----
GeneratedImage
    A generated sticker bitmap and its stable UUID handle.  Equality and
    hashing use the id only.
ErrorKind / ClientError
    The failure taxonomy reported by the network clients.
ClientResult
    Typed result of a single client call: an image or a ``ClientError``.
Phase / EventKind / OrchestratorEvent
    The observable state of a generation flow and the events emitted to the
    presentation layer.
SubmitOutcome
    Typed result of ``GenerationOrchestrator.submit``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Literal

from PIL import Image


@dataclass(frozen=True, eq=False)
class GeneratedImage:
    """A single generated sticker.

    Attributes:
        id: Unique identifier assigned at creation time.  Used for file
            naming, deduplication and display identity.
        bitmap: Decoded pixel data (background-removed when removal worked,
            the raw generation result otherwise).
    """

    id: uuid.UUID
    bitmap: Image.Image

    @classmethod
    def create(cls, bitmap: Image.Image) -> GeneratedImage:
        """Wrap *bitmap* in a new ``GeneratedImage`` with a fresh UUID."""
        return cls(id=uuid.uuid4(), bitmap=bitmap)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GeneratedImage):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


class ErrorKind(str, Enum):
    """Failure categories surfaced by the network clients."""

    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    REMOTE_REJECTION = "remote_rejection"
    DECODE = "decode"
    UNEXPECTED_RESPONSE = "unexpected_response"
    ENCODING = "encoding"


class ClientError(Exception):
    """A failed call to one of the remote services.

    Args:
        kind: Category of the failure.
        message: Diagnostic text.  For remote rejections this is the raw
            response body.
        status_code: HTTP status of the response, when one was received.
    """

    def __init__(self, kind: ErrorKind, message: str, status_code: int | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.kind.value} (status {self.status_code}): {self.message}"
        return f"{self.kind.value}: {self.message}"


@dataclass(frozen=True)
class ClientResult:
    """Result of one client call.  Exactly one of ``image``/``error`` is set."""

    image: Image.Image | None = None
    error: ClientError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.image is not None

    @classmethod
    def success(cls, image: Image.Image) -> ClientResult:
        return cls(image=image)

    @classmethod
    def failure(cls, error: ClientError) -> ClientResult:
        return cls(error=error)


class Phase(str, Enum):
    """Observable phase of the orchestrator."""

    IDLE = "idle"
    GENERATING = "generating"
    REMOVING_BACKGROUND = "removing_background"


class EventKind(str, Enum):
    """Signals emitted to the presentation layer."""

    STARTED = "started"
    PHASE_CHANGED = "phase_changed"
    FINISHED = "finished"
    FAILED = "failed"


@dataclass(frozen=True)
class OrchestratorEvent:
    """A single signal from the orchestrator.

    ``images`` is only populated for ``FINISHED`` events and ``error`` only for
    ``FAILED`` events.
    """

    kind: EventKind
    phase: Phase
    images: tuple[GeneratedImage, ...] = ()
    error: ClientError | None = None


@dataclass(frozen=True)
class SubmitOutcome:
    """Result of a ``submit`` call.

    Attributes:
        status: ``"recents"`` for an empty prompt, ``"completed"`` when a new
            sticker was published, ``"failed"`` when generation failed.
        images: The ResultList published at the end of the call.
        created: The new sticker, when one was created.
        error: The generation failure, when the call failed.
        background_removed: Whether the published bitmap is the
            background-removed one (``False`` means the fallback was used).
        persisted: Whether the new sticker was written to the store.
    """

    status: Literal["recents", "completed", "failed"]
    images: tuple[GeneratedImage, ...] = ()
    created: GeneratedImage | None = None
    error: ClientError | None = None
    background_removed: bool = False
    persisted: bool = False
