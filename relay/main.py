from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from relay.backends.base import GenerationBackend
from relay.backends.workers_ai import WorkersAIBackend
from relay.config import RelaySettings, configure_logging, get_settings
from relay.dependencies import register_exception_handlers
from relay.internal import admin
from relay.routers import image, text

logger = logging.getLogger(__name__)


def create_app(
    backend: GenerationBackend | None = None,
    settings: RelaySettings | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    owned_backend: WorkersAIBackend | None = None
    if backend is None and settings.has_backend_credentials:
        owned_backend = WorkersAIBackend.from_settings(settings)
        backend = owned_backend
    elif backend is None:
        logger.warning("No generation backend configured; generation routes will fail")

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        if owned_backend is not None:
            await owned_backend.aclose()

    app = FastAPI(
        title="workers-ai-relay",
        version="0.1.0",
        docs_url="/docs",
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.backend = backend
    app.state.settings = settings

    register_exception_handlers(app)

    app.include_router(image.router)
    app.include_router(text.router)
    app.include_router(admin.router)

    return app


app = create_app()
