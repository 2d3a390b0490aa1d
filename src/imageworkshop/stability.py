"""
Stability AI API client.

The v2beta ``stable-image`` endpoints take multipart form data and answer
with raw image bytes (seed and finish reason arrive as response headers).
The v1 text-to-image endpoint takes JSON and answers with base64 artifacts.
"""
from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from .tools.errors import ImageInputError, StabilityApiError

log = logging.getLogger("image-workshop-tools")

STABILITY_API_HOST = "https://api.stability.ai"


def content_type_for(fmt: str) -> str:
    fmt = fmt.lower()
    if fmt in ("jpeg", "jpg"):
        return "image/jpeg"
    if fmt == "webp":
        return "image/webp"
    return "image/png"


def is_http_url(value: str) -> bool:
    return value.startswith("http://") or value.startswith("https://")


def decode_image_input(value: str) -> bytes:
    """Raw base64 or a ``data:`` URL → bytes."""
    data = value.split(",", 1)[1] if value.startswith("data:") else value
    try:
        return base64.b64decode(data, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ImageInputError(f"image data is not valid base64: {exc}", status_code=400) from exc


@dataclass(frozen=True)
class ImageFile:
    filename: str
    content: bytes

    def as_upload(self) -> tuple[str, bytes, str]:
        ext = self.filename.rsplit(".", 1)[-1] if "." in self.filename else "png"
        return self.filename, self.content, content_type_for(ext)


@dataclass(frozen=True)
class StabilityImage:
    image: str
    mime_type: str
    seed: int
    finish_reason: str

    def to_tool_response(self) -> dict[str, Any]:
        return {
            "image": self.image,
            "mime_type": self.mime_type,
            "seed": self.seed,
            "finish_reason": self.finish_reason,
        }


class StabilityClient:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = STABILITY_API_HOST,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _post(self, path: str, **kwargs: Any) -> httpx.Response:
        log.info("Calling Stability AI: %s", path)
        try:
            async with self._client() as client:
                response = await client.post(f"{self.base_url}{path}", **kwargs)
        except httpx.HTTPError as exc:
            raise StabilityApiError(f"Stability AI API error: request to {path} failed: {exc}") from exc
        if response.is_error:
            log.error("Stability API Error: %s - %s", response.status_code, response.text)
            raise StabilityApiError(
                f"Stability AI API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        return response

    async def fetch_image(self, url: str) -> bytes:
        log.info("Fetching image from URL: %s", url)
        try:
            async with self._client() as client:
                response = await client.get(url, follow_redirects=True)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ImageInputError(
                f"Failed to fetch image: {exc.response.status_code} {exc.response.reason_phrase}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ImageInputError(f"Failed to fetch image: {exc}") from exc
        return response.content

    async def load_image(self, value: str, filename: str) -> ImageFile:
        """Accept base64, a data URL, or an http(s) URL."""
        content = await self.fetch_image(value) if is_http_url(value) else decode_image_input(value)
        return ImageFile(filename, content)

    async def generate(
        self,
        endpoint: str,
        fields: Mapping[str, Any],
        files: Mapping[str, ImageFile | None],
        output_format: str = "png",
    ) -> StabilityImage:
        """Call a v2beta multipart endpoint; ``None`` fields and files are omitted."""
        data = {key: str(value) for key, value in fields.items() if value is not None}
        uploads = {key: image.as_upload() for key, image in files.items() if image is not None}
        response = await self._post(
            endpoint,
            headers={"Authorization": f"Bearer {self.api_key}", "Accept": "image/*"},
            data=data,
            files=uploads,
        )
        try:
            seed = int(response.headers.get("seed") or 0)
        except ValueError:
            seed = 0
        return StabilityImage(
            image=base64.b64encode(response.content).decode("ascii"),
            mime_type=content_type_for(output_format),
            seed=seed,
            finish_reason=response.headers.get("finish-reason") or "SUCCESS",
        )

    async def text_to_image(self, model: str, payload: dict[str, Any]) -> dict[str, Any]:
        """v1 JSON text-to-image; returns the first artifact."""
        response = await self._post(
            f"/v1/generation/{model}/text-to-image",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Accept": "application/json",
            },
            json=payload,
        )
        artifacts = response.json().get("artifacts") or []
        if not artifacts:
            raise StabilityApiError("No image generated")
        return artifacts[0]
