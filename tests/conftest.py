"""Shared pytest fixtures for Stickerworks tests."""

import io
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Generator

import httpx
import pytest
from PIL import Image

from stickerworks.core.config import StickerworksConfig
from stickerworks.core.image_store import ImageStore

GENERATION_URL = "https://inference.test/models/sdxl-emoji"
REMOVEBG_URL = "https://removebg.test/v1.0/removebg"


def _make_image(color: tuple[int, int, int, int] = (255, 0, 0, 255), size=(8, 8)) -> Image.Image:
    """Create a small solid RGBA image."""
    return Image.new("RGBA", size, color)


def _png_bytes(image: Image.Image) -> bytes:
    """Encode *image* as PNG bytes."""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _image_response(image: Image.Image, status_code: int = 200) -> httpx.Response:
    """Build an ``image/png`` response carrying *image*."""
    return httpx.Response(
        status_code,
        content=_png_bytes(image),
        headers={"content-type": "image/png"},
    )


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it handled.

    Args:
        routes: Mapping of URL string to a handler returning a response.
    """

    def __init__(self, routes: dict[str, Callable[[httpx.Request], httpx.Response]]):
        self.requests: list[httpx.Request] = []
        self.routes = routes
        super().__init__(self._dispatch)

    def _dispatch(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(str(request.url))
        if handler is None:
            return httpx.Response(404, text="no route")
        return handler(request)

    def requests_to(self, url: str) -> list[httpx.Request]:
        return [request for request in self.requests if str(request.url) == url]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def stickers_dir(temp_dir: Path) -> Path:
    """Location of the sticker store (not created up front)."""
    return temp_dir / "Documents" / "Stickers"


@pytest.fixture
def store(stickers_dir: Path) -> ImageStore:
    """ImageStore rooted in a temporary directory."""
    return ImageStore(stickers_dir)


@pytest.fixture
def test_config(stickers_dir: Path) -> StickerworksConfig:
    """Create a test configuration pointing at fake endpoints.

    Args:
        stickers_dir: Temporary sticker directory from fixture

    Returns:
        StickerworksConfig instance for testing
    """
    return StickerworksConfig(
        _env_file=None,
        generation_url=GENERATION_URL,
        hf_token="hf_test_token",
        removebg_url=REMOVEBG_URL,
        removebg_api_key="removebg_test_key",
        stickers_dir=str(stickers_dir),
        generation_timeout=5.0,
        removal_timeout=5.0,
    )


@pytest.fixture
def raw_image() -> Image.Image:
    """Bitmap returned by the fake generation endpoint."""
    return _make_image((255, 0, 0, 255), size=(16, 16))


@pytest.fixture
def cutout_image() -> Image.Image:
    """Bitmap returned by the fake background-removal endpoint."""
    return _make_image((0, 0, 255, 128), size=(16, 16))


@pytest.fixture
def make_image() -> Callable[..., Image.Image]:
    """Factory for small solid RGBA images."""
    return _make_image


@pytest.fixture
def png_bytes() -> Callable[[Image.Image], bytes]:
    """PNG encoder for test images."""
    return _png_bytes


@pytest.fixture
def image_response() -> Callable[..., httpx.Response]:
    """Factory for ``image/png`` responses."""
    return _image_response


@pytest.fixture
def transport_factory() -> type[RecordingTransport]:
    """The recording mock transport class."""
    return RecordingTransport
