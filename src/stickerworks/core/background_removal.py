"""Background-removal client for a remove.bg compatible endpoint.

Processing flow:
    1. Encode the input bitmap as PNG.  If encoding fails no request is made.
    2. Build a two-part ``multipart/form-data`` body: the PNG as
       ``image_file`` (filename ``image.png``) and ``size=auto``.
    3. POST it with the key in the ``X-API-Key`` header.
    4. Accept only HTTP 200 with a decodable image body.

Multipart layout:
    The body is assembled by hand rather than with ``httpx``'s ``files=``
    support so the boundary token, part order and line endings stay fixed::

        --Boundary-<uuid>\\r\\n
        Content-Disposition: form-data; name="image_file"; filename="image.png"\\r\\n
        Content-Type: image/png\\r\\n
        \\r\\n
        <png bytes>\\r\\n
        --Boundary-<uuid>\\r\\n
        Content-Disposition: form-data; name="size"\\r\\n
        \\r\\n
        auto\\r\\n
        --Boundary-<uuid>--\\r\\n

    A fresh boundary is generated for every request.

Failure semantics:
    Failures are returned, never raised.  The orchestrator treats any failure
    as "use the unprocessed bitmap".
"""

from __future__ import annotations

import io
import logging
import uuid

import httpx
from PIL import Image

from stickerworks.core.generation_client import decode_image, validate_endpoint
from stickerworks.core.models import ClientError, ClientResult, ErrorKind

logger = logging.getLogger(__name__)

IMAGE_FIELD_NAME = "image_file"
IMAGE_FILENAME = "image.png"
IMAGE_MIME_TYPE = "image/png"
SIZE_FIELD_NAME = "size"
SIZE_AUTO = "auto"


def new_boundary() -> str:
    """Return a unique multipart boundary token."""
    return f"Boundary-{uuid.uuid4()}"


def encode_png(bitmap: Image.Image) -> bytes:
    """Serialize *bitmap* to PNG bytes.

    Raises:
        ClientError: ``ENCODING`` when Pillow cannot write the image as PNG.
    """
    buffer = io.BytesIO()
    try:
        bitmap.save(buffer, format="PNG")
    except (OSError, ValueError, KeyError) as e:
        raise ClientError(ErrorKind.ENCODING, f"Failed to convert image to PNG data: {e}") from e
    return buffer.getvalue()


def build_multipart_body(png_data: bytes, boundary: str) -> bytes:
    """Assemble the two-part form body for *png_data* using *boundary*."""
    body = bytearray()
    body += f"--{boundary}\r\n".encode()
    body += (
        f'Content-Disposition: form-data; name="{IMAGE_FIELD_NAME}"; '
        f'filename="{IMAGE_FILENAME}"\r\n'
    ).encode()
    body += f"Content-Type: {IMAGE_MIME_TYPE}\r\n\r\n".encode()
    body += png_data
    body += b"\r\n"
    body += f"--{boundary}\r\n".encode()
    body += f'Content-Disposition: form-data; name="{SIZE_FIELD_NAME}"\r\n\r\n'.encode()
    body += f"{SIZE_AUTO}\r\n".encode()
    body += f"--{boundary}--\r\n".encode()
    return bytes(body)


class BackgroundRemovalClient:
    """Strip the background from a bitmap via a remote service.

    Args:
        http_client: Shared ``httpx.AsyncClient``.  The caller owns it.
        endpoint: Background-removal endpoint URL.
        api_key: Value for the ``X-API-Key`` header.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        endpoint: str,
        *,
        api_key: str | None = None,
        timeout: float = 60.0,
    ) -> None:
        self._http = http_client
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout

    async def remove_background(self, bitmap: Image.Image) -> ClientResult:
        """Return *bitmap* with its background removed.

        Returns:
            ``ClientResult`` holding the processed image, or a ``ClientError``.
        """
        try:
            image = await self._remove_background(bitmap)
        except ClientError as e:
            logger.warning(f"Background removal failed: {e}")
            return ClientResult.failure(e)
        return ClientResult.success(image)

    async def _remove_background(self, bitmap: Image.Image) -> Image.Image:
        png_data = encode_png(bitmap)
        url = validate_endpoint(self.endpoint)

        boundary = new_boundary()
        headers = {
            "X-API-Key": self.api_key or "",
            "Content-Type": f"multipart/form-data; boundary={boundary}",
        }

        try:
            response = await self._http.post(
                url,
                content=build_multipart_body(png_data, boundary),
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise ClientError(ErrorKind.TRANSPORT, f"Error calling background removal: {e}") from e

        if response.status_code != 200:
            raise ClientError(
                ErrorKind.REMOTE_REJECTION,
                response.text or "Non-200 response",
                status_code=response.status_code,
            )

        image = decode_image(response.content)
        logger.info("Background removed")
        return image
