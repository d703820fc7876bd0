"""Sticker generation flow: generate, remove background, persist, publish.

This module provides :class:`GenerationOrchestrator`, the single owner of the
in-memory recents list and of the "in progress" status.  It sequences the two
network clients and the image store for each user submission.

Key Responsibilities
--------------------
- **Startup repopulation**: :meth:`load_recents` reads the store once and
  publishes the result newest first.
- **Generation flow**: :meth:`submit` runs generation, then background
  removal (falling back to the raw bitmap when removal fails), then persists
  the new sticker and prepends it to recents before republishing.
- **Empty prompt**: an empty submission republishes recents without touching
  the phase.
- **Selection**: :meth:`select` adds a sticker that is not yet in recents
  (matched by id), persists it, and returns the export bytes.
- **Event publication**: phase changes and results are reported through a
  single ``on_event`` callback; the consumer decides how and when to render.

State Machine
-------------
::

    IDLE --submit(non-empty)--> GENERATING --ok--> REMOVING_BACKGROUND --> IDLE
                                    |
                                    +--error--> IDLE (ResultList unchanged)

The phase is reset to ``IDLE`` on every exit path.  An exception that
escapes the flow is reported as a ``FAILED`` event without an error payload
before it propagates, so listeners always see the flow end.

Disk writes run in a worker thread via ``asyncio.to_thread``.

Concurrency
-----------
One submission at a time is the expected usage.  Overlapping submissions are
not serialized; the last one to finish wins the final publication.

Usage
-----
::

    async with httpx.AsyncClient() as http:
        orchestrator = GenerationOrchestrator(
            store=ImageStore(config.stickers_dir),
            generator=ImageGenerationClient(http, config.generation_url),
            remover=BackgroundRemovalClient(http, config.removebg_url),
            on_event=print,
        )
        orchestrator.load_recents()
        outcome = await orchestrator.submit("a happy cactus")
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable

from stickerworks.core.background_removal import BackgroundRemovalClient
from stickerworks.core.generation_client import ImageGenerationClient
from stickerworks.core.image_store import ImageStore, ImageStoreError
from stickerworks.core.models import (
    EventKind,
    GeneratedImage,
    OrchestratorEvent,
    Phase,
    SubmitOutcome,
)
from stickerworks.core.sticker_export import DEFAULT_MAX_DIMENSION, export_sticker

logger = logging.getLogger(__name__)

EventCallback = Callable[[OrchestratorEvent], None]


class GenerationOrchestrator:
    """Drive the generate -> remove background -> persist -> publish flow.

    Attributes:
        _store (ImageStore):
            Durable sticker storage.
        _generator (ImageGenerationClient):
            Text-to-image client.
        _remover (BackgroundRemovalClient):
            Background-removal client.
        _recents (list[GeneratedImage]):
            Every persisted sticker, newest first.
        _results (list[GeneratedImage]):
            The currently published ResultList.
        _phase (Phase):
            Current phase; anything but ``IDLE`` means "in progress".
    """

    def __init__(
        self,
        store: ImageStore,
        generator: ImageGenerationClient,
        remover: BackgroundRemovalClient,
        *,
        on_event: EventCallback | None = None,
        export_max_dimension: int = DEFAULT_MAX_DIMENSION,
    ) -> None:
        self._store = store
        self._generator = generator
        self._remover = remover
        self._on_event = on_event
        self._export_max_dimension = export_max_dimension

        self._recents: list[GeneratedImage] = []
        self._results: list[GeneratedImage] = []
        self._phase = Phase.IDLE

    # -- Read-only state ----------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def in_progress(self) -> bool:
        return self._phase is not Phase.IDLE

    @property
    def recents(self) -> tuple[GeneratedImage, ...]:
        return tuple(self._recents)

    @property
    def results(self) -> tuple[GeneratedImage, ...]:
        return tuple(self._results)

    def find(self, image_id: uuid.UUID) -> GeneratedImage | None:
        """Return the published or recent sticker with *image_id*, if any."""
        for image in (*self._results, *self._recents):
            if image.id == image_id:
                return image
        return None

    # -- Public interface ---------------------------------------------------

    def load_recents(self) -> tuple[GeneratedImage, ...]:
        """Populate recents from the store and publish them.

        A store failure is logged and leaves recents empty.

        Returns:
            The published ResultList.
        """
        try:
            self._recents = self._store.load_all()
        except ImageStoreError as e:
            logger.error(f"Error loading stickers: {e}", exc_info=True)
            self._recents = []

        logger.info(f"Loaded {len(self._recents)} sticker(s) from {self._store.directory}")
        return self._publish_recents()

    async def submit(self, prompt: str) -> SubmitOutcome:
        """Run one generation flow for *prompt*.

        Args:
            prompt: User prompt.  Surrounding whitespace is ignored; an empty
                prompt republishes recents and returns immediately.

        Returns:
            A :class:`SubmitOutcome` describing what was published.
        """
        prompt = prompt.strip()
        if not prompt:
            return SubmitOutcome(status="recents", images=self._publish_recents())

        self._set_phase(Phase.GENERATING, EventKind.STARTED)

        try:
            generated = await self._generator.generate(prompt)
            if not generated.ok:
                failure = generated.error
            else:
                failure = None
                self._set_phase(Phase.REMOVING_BACKGROUND, EventKind.PHASE_CHANGED)
                removal = await self._remover.remove_background(generated.image)
                if removal.ok:
                    bitmap = removal.image
                else:
                    logger.info("Falling back to the unprocessed image")
                    bitmap = generated.image

                created = GeneratedImage.create(bitmap)
                persisted = await asyncio.to_thread(self._persist, created)
                self._recents.insert(0, created)
        except BaseException:
            self._phase = Phase.IDLE
            logger.error("Sticker generation aborted", exc_info=True)
            self._emit(OrchestratorEvent(kind=EventKind.FAILED, phase=self._phase))
            raise

        self._phase = Phase.IDLE

        if failure is not None:
            logger.error(f"Error generating image: {failure}")
            self._emit(OrchestratorEvent(kind=EventKind.FAILED, phase=self._phase, error=failure))
            return SubmitOutcome(status="failed", images=self.results, error=failure)

        images = self._publish_recents()
        return SubmitOutcome(
            status="completed",
            images=images,
            created=created,
            background_removed=removal.ok,
            persisted=persisted,
        )

    def select(self, image: GeneratedImage) -> bytes:
        """Handle selection of *image* and return its export PNG bytes.

        A sticker that is not already in recents (by id) is appended to
        recents and persisted before this method returns.
        """
        if image not in self._recents:
            self._recents.append(image)
            self._persist(image)

        return export_sticker(image.bitmap, self._export_max_dimension)

    # -- Internals ----------------------------------------------------------

    def _persist(self, image: GeneratedImage) -> bool:
        """Save *image*; a failure is logged and does not block publication."""
        try:
            self._store.save(image.bitmap, image.id)
        except ImageStoreError as e:
            logger.error(f"Error saving sticker image: {e}", exc_info=True)
            return False
        return True

    def _publish_recents(self) -> tuple[GeneratedImage, ...]:
        self._results = list(self._recents)
        images = self.results
        self._emit(OrchestratorEvent(kind=EventKind.FINISHED, phase=self._phase, images=images))
        return images

    def _set_phase(self, phase: Phase, kind: EventKind) -> None:
        self._phase = phase
        self._emit(OrchestratorEvent(kind=kind, phase=phase))

    def _emit(self, event: OrchestratorEvent) -> None:
        if self._on_event is None:
            return
        try:
            self._on_event(event)
        except Exception as e:
            logger.error(f"Event listener failed on {event.kind.value}: {e}", exc_info=True)
