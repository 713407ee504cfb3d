from __future__ import annotations

import json
from typing import Any

import httpx

from relay.config import RelaySettings
from relay.core.errors import BackendNotConfigured, UpstreamError, UpstreamUnavailable

_ERROR_BODY_EXCERPT = 200


class WorkersAIBackend:
    """Cloudflare Workers AI over its REST API.

    JSON responses are unwrapped from the ``result`` envelope; any other
    content type (binary image models) is returned as raw bytes.
    """

    def __init__(
        self,
        account_id: str,
        api_token: str,
        api_base: str = "https://api.cloudflare.com/client/v4",
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.account_id = account_id
        self.api_base = api_base.rstrip("/")
        self._client = httpx.AsyncClient(
            headers={"Authorization": f"Bearer {api_token}"},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: RelaySettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> WorkersAIBackend:
        account_id = settings.cloudflare_account_id
        api_token = settings.cloudflare_api_token
        if not account_id or api_token is None:
            raise BackendNotConfigured(
                "Workers AI credentials are missing.",
                details="Set RELAY_CLOUDFLARE_ACCOUNT_ID and RELAY_CLOUDFLARE_API_TOKEN.",
            )

        return cls(
            account_id=account_id,
            api_token=api_token.get_secret_value(),
            api_base=settings.api_base,
            timeout=settings.request_timeout,
            transport=transport,
        )

    def model_url(self, model: str) -> str:
        return f"{self.api_base}/accounts/{self.account_id}/ai/run/{model}"

    async def run(self, model: str, inputs: dict[str, Any]) -> Any:
        try:
            response = await self._client.post(self.model_url(model), json=inputs)
        except httpx.RequestError as exc:
            raise UpstreamUnavailable(
                f"Workers AI is unreachable: {exc}",
                details=type(exc).__name__,
            ) from exc

        if not response.is_success:
            raise UpstreamError(
                f"Workers AI returned HTTP {response.status_code}.",
                details=_body_excerpt(response),
            )

        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("application/json"):
            return response.content

        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise UpstreamError(
                "Workers AI returned invalid JSON.",
                details=_body_excerpt(response),
            ) from exc

        if isinstance(body, dict) and body.get("success") is False:
            raise UpstreamError(
                "Workers AI reported a failed run.",
                details=_join_error_messages(body.get("errors")),
            )

        if isinstance(body, dict) and "result" in body:
            return body["result"]
        return body

    async def aclose(self) -> None:
        await self._client.aclose()


def _body_excerpt(response: httpx.Response) -> str | None:
    return response.content[:_ERROR_BODY_EXCERPT].decode("utf-8", errors="replace") or None


def _join_error_messages(errors: Any) -> str | None:
    if not isinstance(errors, list):
        return None

    messages = []
    for error in errors:
        if isinstance(error, dict) and error.get("message"):
            messages.append(str(error["message"]))
        elif isinstance(error, str):
            messages.append(error)
    return "; ".join(messages) or None
