"""Text-to-image client for a hosted inference endpoint.

Processing flow:
    1. Validate the configured endpoint URL.
    2. Append the style suffix to the prompt and build the JSON payload
       ``{"inputs": ..., "options": {"wait_for_model": true}}``.
    3. POST it, with a bearer token when one is configured.
    4. Classify the response by HTTP status, then by ``Content-Type``.

Response classification:
    - non-2xx status             -> ``REMOTE_REJECTION`` carrying the raw body
    - 2xx + ``image/*``          -> decoded bitmap (``DECODE`` if Pillow fails)
    - 2xx + ``application/json`` -> ``UNEXPECTED_RESPONSE``, payload logged
    - 2xx + anything else        -> ``UNEXPECTED_RESPONSE``

Error handling strategy:
    Nothing escapes :meth:`ImageGenerationClient.generate`.  Every failure is
    returned as a :class:`ClientResult` holding a :class:`ClientError`, so
    callers can test failure paths without parsing logs.

Retry policy:
    None.  Exactly one HTTP attempt per call.
"""

from __future__ import annotations

import io
import json
import logging

import httpx
from PIL import Image, UnidentifiedImageError

from stickerworks.core.models import ClientError, ClientResult, ErrorKind

logger = logging.getLogger(__name__)


def validate_endpoint(url: str) -> httpx.URL:
    """Parse *url* and require an absolute http(s) URL.

    Raises:
        ClientError: ``CONFIGURATION`` when the URL is malformed.
    """
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise ClientError(ErrorKind.CONFIGURATION, f"Invalid endpoint URL {url!r}: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ClientError(ErrorKind.CONFIGURATION, f"Invalid endpoint URL {url!r}")
    return parsed


def decode_image(data: bytes) -> Image.Image:
    """Decode *data* into a fully loaded Pillow image.

    Raises:
        ClientError: ``DECODE`` when the bytes are not a supported image.
    """
    try:
        with Image.open(io.BytesIO(data)) as handle:
            handle.load()
            return handle.copy()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ClientError(ErrorKind.DECODE, f"Response body is not a valid image: {e}") from e


class ImageGenerationClient:
    """Generate sticker bitmaps from text prompts.

    Args:
        http_client: Shared ``httpx.AsyncClient``.  The caller owns it.
        endpoint: Inference endpoint URL.
        token: Bearer token.  No ``Authorization`` header is sent when empty.
        style_suffix: Text appended to every prompt (e.g. ``" emoji"``).
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        endpoint: str,
        *,
        token: str | None = None,
        style_suffix: str = " emoji",
        timeout: float = 120.0,
    ) -> None:
        self._http = http_client
        self.endpoint = endpoint
        self.token = token
        self.style_suffix = style_suffix
        self.timeout = timeout

    def build_payload(self, prompt: str) -> dict:
        """Return the JSON request body for *prompt*."""
        return {
            "inputs": prompt + self.style_suffix,
            "options": {"wait_for_model": True},
        }

    def build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def generate(self, prompt: str) -> ClientResult:
        """Generate a single bitmap for *prompt*.

        Args:
            prompt: Non-empty user prompt, before the style suffix.

        Returns:
            ``ClientResult`` with the decoded image, or with a ``ClientError``
            describing why generation failed.
        """
        try:
            image = await self._generate(prompt)
        except ClientError as e:
            logger.error(f"Image generation failed: {e}")
            return ClientResult.failure(e)
        return ClientResult.success(image)

    async def _generate(self, prompt: str) -> Image.Image:
        if not prompt:
            raise ClientError(ErrorKind.CONFIGURATION, "Prompt must not be empty")

        url = validate_endpoint(self.endpoint)
        payload = self.build_payload(prompt)

        logger.info(f"Requesting generation for prompt: {payload['inputs']!r}")

        try:
            response = await self._http.post(
                url,
                content=json.dumps(payload).encode("utf-8"),
                headers=self.build_headers(),
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise ClientError(ErrorKind.TRANSPORT, f"Generation request failed: {e}") from e

        if not response.is_success:
            raise ClientError(
                ErrorKind.REMOTE_REJECTION,
                response.text or "Unknown error",
                status_code=response.status_code,
            )

        content_type = response.headers.get("content-type", "")

        if "image/" in content_type:
            image = decode_image(response.content)
            logger.info(f"Generated {image.width}x{image.height} image")
            return image

        if "application/json" in content_type:
            try:
                detail = json.dumps(response.json())
            except ValueError:
                detail = response.text
            logger.warning(f"Received JSON response instead of image: {detail}")
            raise ClientError(
                ErrorKind.UNEXPECTED_RESPONSE,
                f"JSON response instead of image: {detail}",
                status_code=response.status_code,
            )

        raise ClientError(
            ErrorKind.UNEXPECTED_RESPONSE,
            f"Unexpected Content-Type: {content_type or '<missing>'}",
            status_code=response.status_code,
        )
