"""Re-encode a selected sticker for sharing.

Messaging surfaces cap sticker file sizes, so a selected image is scaled down
until its longest side fits ``max_dimension`` (never scaled up) and written as
PNG.  The aspect ratio is preserved.
"""

from __future__ import annotations

import io

from PIL import Image

DEFAULT_MAX_DIMENSION = 300


def fit_size(width: int, height: int, max_dimension: int = DEFAULT_MAX_DIMENSION) -> tuple[int, int]:
    """Return the export size for a ``width`` x ``height`` image."""
    scale = min(max_dimension / width, max_dimension / height, 1.0)
    return max(1, round(width * scale)), max(1, round(height * scale))


def export_sticker(bitmap: Image.Image, max_dimension: int = DEFAULT_MAX_DIMENSION) -> bytes:
    """Resize *bitmap* to fit ``max_dimension`` and return PNG bytes."""
    size = fit_size(bitmap.width, bitmap.height, max_dimension)
    resized = bitmap if size == bitmap.size else bitmap.resize(size, Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    resized.save(buffer, format="PNG")
    return buffer.getvalue()
