from __future__ import annotations

from fastapi import APIRouter, Depends

from relay.backends.base import GenerationBackend
from relay.dependencies import get_backend

router = APIRouter(prefix="/internal", tags=["internal"])


@router.get("/healthz")
async def healthz(
    backend: GenerationBackend | None = Depends(get_backend),
) -> dict[str, str]:
    return {
        "status": "ok",
        "backend": "configured" if backend is not None else "missing",
    }
