from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from relay.backends.base import GenerationBackend
from relay.config import RelaySettings
from relay.core.errors import map_relay_error
from relay.core.generation import generate_text
from relay.dependencies import get_backend, get_relay_settings
from relay.schemas import GenerationRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["text"])


@router.post("/generate-text")
async def generate_text_response(
    payload: GenerationRequest,
    backend: GenerationBackend | None = Depends(get_backend),
    settings: RelaySettings = Depends(get_relay_settings),
):
    try:
        text = await generate_text(backend, settings.text_model, payload.prompt)
    except Exception as exc:
        error = map_relay_error(exc, "Failed to generate text")
        logger.error(
            "%s (details: %s)",
            error.message,
            error.details,
            exc_info=error.code == "internal_error",
        )
        raise error from exc

    return JSONResponse(content={"response": text})
