"""File-backed sticker storage.

This module keeps the persistence rules for generated stickers in one small,
testable unit so the orchestrator can focus on sequencing network calls.

The store is intentionally simple:

- every sticker is a single ``<uuid>.png`` file in the stickers directory
- there is no index or metadata sidecar; the directory listing is the source
  of truth for which stickers exist
- list order is reverse-chronological (newest first), by file creation time

Because users can also manipulate the directory manually outside the
application, :meth:`ImageStore.load_all` tolerates foreign content.  Files
whose stem is not a UUID, or whose bytes do not decode as an image, are
skipped by default.  The policy is explicit: pass ``skip_invalid=False`` to
turn those files into an :class:`ImageStoreError` instead.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from stickerworks.core.models import GeneratedImage

logger = logging.getLogger(__name__)

IMAGE_EXTENSION = ".png"


class ImageStoreError(Exception):
    """Raised for store failures the caller asked to see."""


def _creation_time(path: Path) -> float:
    """Return the best available creation timestamp for *path*.

    ``st_birthtime`` exists on macOS, BSD and recent Windows builds.  Linux
    does not expose it through ``os.stat``, so the modification time is used
    there; stickers are written once, so the two agree in practice.
    """
    stat = path.stat()
    return getattr(stat, "st_birthtime", stat.st_mtime)


def _parse_id(path: Path) -> uuid.UUID | None:
    """Return the UUID encoded in *path*'s filename, or ``None``."""
    if path.suffix.lower() != IMAGE_EXTENSION:
        return None
    try:
        return uuid.UUID(path.stem)
    except ValueError:
        return None


class ImageStore:
    """Persist generated stickers as PNG files in a single directory.

    Args:
        directory: Directory holding the sticker files.  Created on first use
            if it does not exist.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def _ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, image_id: uuid.UUID) -> Path:
        """Return the file path for *image_id*.

        The filename is a pure function of the id, so saving the same id twice
        overwrites the earlier file.
        """
        return self.directory / f"{image_id}{IMAGE_EXTENSION}"

    def save(self, bitmap: Image.Image, image_id: uuid.UUID) -> Path:
        """Write *bitmap* as PNG under *image_id*.

        Args:
            bitmap: Image to persist.
            image_id: Identifier that names the file.

        Returns:
            Path of the written file.

        Raises:
            ImageStoreError: If the directory cannot be created or the file
                cannot be written.
        """
        filepath = self.path_for(image_id)
        try:
            self._ensure_directory()
            bitmap.save(filepath, format="PNG")
        except (OSError, ValueError) as e:
            raise ImageStoreError(f"Could not save sticker {image_id}: {e}") from e

        logger.debug(f"Saved sticker to {filepath}")
        return filepath

    def load_all(self, *, skip_invalid: bool = True) -> list[GeneratedImage]:
        """Load every sticker in the directory, newest first.

        Args:
            skip_invalid: When ``True`` (the default), files whose name is not
                ``<uuid>.png`` or whose content is not a decodable image are
                skipped.  When ``False`` they raise :class:`ImageStoreError`.

        Returns:
            Stickers ordered by file creation time, descending.  Files with
            identical timestamps are ordered by name so the result is stable.

        Raises:
            ImageStoreError: If the directory cannot be created or listed, or
                (with ``skip_invalid=False``) if a file is invalid.
        """
        try:
            self._ensure_directory()
            entries = [path for path in self.directory.iterdir() if path.is_file()]
        except OSError as e:
            raise ImageStoreError(f"Could not list {self.directory}: {e}") from e

        dated: list[tuple[float, str, Path, uuid.UUID]] = []
        for path in entries:
            image_id = _parse_id(path)
            if image_id is None:
                if not skip_invalid:
                    raise ImageStoreError(f"Unexpected file in sticker directory: {path.name}")
                logger.debug(f"Skipping non-sticker file: {path.name}")
                continue
            try:
                created = _creation_time(path)
            except OSError:
                # Removed between listing and stat.
                continue
            dated.append((created, path.name, path, image_id))

        dated.sort(key=lambda item: (item[0], item[1]), reverse=True)

        images: list[GeneratedImage] = []
        for _, _, path, image_id in dated:
            try:
                bitmap = self._decode(path)
            except ImageStoreError:
                if not skip_invalid:
                    raise
                logger.debug(f"Skipping undecodable sticker file: {path.name}")
                continue
            images.append(GeneratedImage(id=image_id, bitmap=bitmap))

        return images

    @staticmethod
    def _decode(path: Path) -> Image.Image:
        """Fully decode *path* so the file handle is released immediately."""
        try:
            with Image.open(path) as handle:
                handle.load()
                return handle.copy()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise ImageStoreError(f"Could not decode {path.name}: {e}") from e

