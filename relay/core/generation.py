from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .errors import BackendNotConfigured
from .normalization import describe_shape, normalize_image_output, normalize_text_output

if TYPE_CHECKING:
    from relay.backends.base import GenerationBackend

logger = logging.getLogger(__name__)

_PROMPT_PREVIEW_LENGTH = 50


async def generate_image_base64(
    backend: GenerationBackend | None,
    model: str,
    prompt: str,
) -> str:
    raw = await _run(backend, model, {"prompt": prompt}, prompt)

    image_base64 = await normalize_image_output(raw)

    logger.info("Image generated by %s (%d base64 chars)", model, len(image_base64))
    return image_base64


async def generate_text(
    backend: GenerationBackend | None,
    model: str,
    prompt: str,
) -> str:
    inputs = {"messages": [{"role": "user", "content": prompt}]}
    raw = await _run(backend, model, inputs, prompt)

    text = normalize_text_output(raw)

    logger.info("Text generated by %s (%d chars)", model, len(text))
    return text


async def _run(
    backend: GenerationBackend | None,
    model: str,
    inputs: dict[str, Any],
    prompt: str,
) -> Any:
    if backend is None:
        raise BackendNotConfigured(
            "AI service not configured correctly. Missing generation backend.",
            details=(
                "Set RELAY_CLOUDFLARE_ACCOUNT_ID and RELAY_CLOUDFLARE_API_TOKEN "
                "or pass a backend to create_app()."
            ),
        )

    preview = prompt[:_PROMPT_PREVIEW_LENGTH]
    logger.info("Calling %s with prompt: %r...", model, preview)

    raw = await backend.run(model, inputs)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Raw output from %s: %s", model, describe_shape(raw))
    return raw
