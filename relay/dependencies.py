from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from relay.backends.base import GenerationBackend
from relay.config import RelaySettings
from relay.core.errors import InvalidInput, RelayError

logger = logging.getLogger(__name__)


def get_backend(request: Request) -> GenerationBackend | None:
    return request.app.state.backend


def get_relay_settings(request: Request) -> RelaySettings:
    return request.app.state.settings


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RelayError)
    async def handle_relay_error(
        _request: Request,
        exc: RelayError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_envelope(),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        first_error = exc.errors()[0]["msg"] if exc.errors() else "Invalid request"
        logger.warning("Rejected %s: %s", request.url.path, first_error)

        invalid = InvalidInput(details=first_error)
        return JSONResponse(
            status_code=invalid.status_code,
            content=invalid.to_envelope(),
        )
