from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from relay.backends.workers_ai import WorkersAIBackend
from relay.config import RelaySettings
from relay.core.errors import BackendNotConfigured, UpstreamError, UpstreamUnavailable

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


def run_backend(handler, model="@cf/test/model", inputs=None):
    captured: dict[str, httpx.Request] = {}

    def _handler(request: httpx.Request) -> httpx.Response:
        captured["request"] = request
        return handler(request)

    async def _run():
        backend = WorkersAIBackend(
            account_id="acct",
            api_token="token-123",
            transport=httpx.MockTransport(_handler),
        )
        try:
            return await backend.run(model, inputs or {"prompt": "hi"})
        finally:
            await backend.aclose()

    return asyncio.run(_run()), captured


def test_binary_response_is_returned_as_bytes():
    output, captured = run_backend(
        lambda _request: httpx.Response(
            200, content=PNG_BYTES, headers={"content-type": "image/png"}
        )
    )

    assert output == PNG_BYTES
    request = captured["request"]
    assert request.method == "POST"
    assert str(request.url) == (
        "https://api.cloudflare.com/client/v4/accounts/acct/ai/run/@cf/test/model"
    )
    assert request.headers["authorization"] == "Bearer token-123"
    assert json.loads(request.content) == {"prompt": "hi"}


def test_json_response_is_unwrapped_from_result():
    output, _ = run_backend(
        lambda _request: httpx.Response(
            200, json={"result": {"response": "hello"}, "success": True, "errors": []}
        )
    )

    assert output == {"response": "hello"}


def test_json_without_result_envelope_is_returned_whole():
    output, _ = run_backend(
        lambda _request: httpx.Response(200, json={"image_base64": "AAEC/f7/"})
    )

    assert output == {"image_base64": "AAEC/f7/"}


def test_failed_run_raises_upstream_error():
    with pytest.raises(UpstreamError) as exc_info:
        run_backend(
            lambda _request: httpx.Response(
                200,
                json={
                    "success": False,
                    "errors": [{"code": 5006, "message": "bad input"}, "quota"],
                    "result": None,
                },
            )
        )

    assert exc_info.value.details == "bad input; quota"


def test_http_error_status_raises_upstream_error():
    with pytest.raises(UpstreamError) as exc_info:
        run_backend(lambda _request: httpx.Response(502, text="Bad Gateway"))

    assert "502" in exc_info.value.message
    assert exc_info.value.details == "Bad Gateway"
    assert exc_info.value.status_code == 500


def test_transport_failure_raises_upstream_unavailable():
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamUnavailable) as exc_info:
        run_backend(_handler)

    assert exc_info.value.details == "ConnectError"


def test_from_settings_requires_credentials():
    with pytest.raises(BackendNotConfigured):
        WorkersAIBackend.from_settings(RelaySettings(_env_file=None, cloudflare_account_id="acct"))


def test_from_settings_uses_configured_api_base():
    settings = RelaySettings(
        _env_file=None,
        cloudflare_account_id="acct",
        cloudflare_api_token="secret",
        api_base="https://gateway.example.test/v1/",
    )

    async def _build():
        backend = WorkersAIBackend.from_settings(settings)
        try:
            return backend.model_url("@cf/meta/llama")
        finally:
            await backend.aclose()

    url = asyncio.run(_build())

    assert url == "https://gateway.example.test/v1/accounts/acct/ai/run/@cf/meta/llama"


def test_unparseable_json_body_raises_upstream_error():
    with pytest.raises(UpstreamError) as exc_info:
        run_backend(
            lambda _request: httpx.Response(
                200,
                content=b"{not json",
                headers={"content-type": "application/json"},
            )
        )

    assert exc_info.value.message == "Workers AI returned invalid JSON."
    assert exc_info.value.details == "{not json"


def test_redirect_is_not_treated_as_image_bytes():
    with pytest.raises(UpstreamError) as exc_info:
        run_backend(
            lambda _request: httpx.Response(
                302,
                content=b"<html>moved</html>",
                headers={
                    "content-type": "text/html",
                    "location": "https://login.example.test/",
                },
            )
        )

    assert "302" in exc_info.value.message


def test_non_transport_request_error_raises_upstream_unavailable():
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.DecodingError("corrupt gzip stream", request=request)

    with pytest.raises(UpstreamUnavailable) as exc_info:
        run_backend(_handler)

    assert exc_info.value.details == "DecodingError"
