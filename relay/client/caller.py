"""HTTP caller for the relay endpoints.

``RelayClient`` issues one request per call and unwraps the stable
envelopes. Every failure ends in a ``ClientError`` carrying a message that
is fit to show to a user.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from .markup import render_markup

logger = logging.getLogger(__name__)

IMAGE_PATH = "/ai"
TEXT_PATH = "/generate-text"
_ERROR_TEXT_EXCERPT = 100


class ClientError(Exception):
    """Base class for failures surfaced by the relay caller."""


class UpstreamError(ClientError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class MalformedResponse(ClientError):
    pass


class RequestInFlight(ClientError):
    pass


@dataclass(slots=True)
class GeneratedImage:
    image_base64: str

    @property
    def data_uri(self) -> str:
        return f"data:image/png;base64,{self.image_base64}"


@dataclass(slots=True)
class GeneratedText:
    text: str

    @property
    def html(self) -> str:
        return render_markup(self.text)


class RelayClient:
    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> RelayClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def generate_image(self, prompt: str) -> GeneratedImage:
        body = await self._post(IMAGE_PATH, prompt, "Image generation failed")

        result = body.get("result") if isinstance(body, dict) else None
        image_base64 = result.get("image_base64") if isinstance(result, dict) else None
        if not isinstance(image_base64, str) or not image_base64:
            raise MalformedResponse("Relay response is missing result.image_base64.")

        return GeneratedImage(image_base64=image_base64)

    async def generate_text(self, prompt: str) -> GeneratedText:
        body = await self._post(TEXT_PATH, prompt, "Text generation failed")

        text = body.get("response") if isinstance(body, dict) else None
        if not isinstance(text, str) or not text:
            raise MalformedResponse("Relay response is missing response text.")

        return GeneratedText(text=text)

    async def _post(self, path: str, prompt: str, failure_prefix: str) -> Any:
        try:
            response = await self._client.post(path, json={"prompt": prompt})
        except httpx.RequestError as exc:
            raise UpstreamError(f"{failure_prefix}: {exc}") from exc

        if not response.is_success:
            message = extract_error_message(response)
            logger.error("Relay error %d on %s: %s", response.status_code, path, message)
            raise UpstreamError(
                f"{failure_prefix}: {message}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MalformedResponse("Relay returned a non-JSON success body.") from exc


def extract_error_message(response: httpx.Response) -> str:
    # The body may come from a proxy in front of the relay, so it is read
    # as text before any JSON parsing is attempted.
    text = response.text

    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        payload = None

    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str) and error:
            return error
        if isinstance(payload.get("message"), str) and payload["message"]:
            return payload["message"]

    if payload is None and text.strip():
        excerpt = text.strip()
        if len(excerpt) > _ERROR_TEXT_EXCERPT:
            excerpt = excerpt[:_ERROR_TEXT_EXCERPT] + "..."
        return excerpt

    return response.reason_phrase or "Unknown error"
