from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from relay.backends.base import GenerationBackend
from relay.config import RelaySettings
from relay.core.errors import map_relay_error
from relay.core.generation import generate_image_base64
from relay.dependencies import get_backend, get_relay_settings
from relay.schemas import GenerationRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["image"])


@router.post("/ai")
async def generate_image(
    payload: GenerationRequest,
    backend: GenerationBackend | None = Depends(get_backend),
    settings: RelaySettings = Depends(get_relay_settings),
):
    try:
        image_base64 = await generate_image_base64(
            backend, settings.image_model, payload.prompt
        )
    except Exception as exc:
        error = map_relay_error(exc, "Failed to generate image")
        logger.error(
            "%s (details: %s)",
            error.message,
            error.details,
            exc_info=error.code == "internal_error",
        )
        raise error from exc

    return JSONResponse(content={"result": {"image_base64": image_base64}})
