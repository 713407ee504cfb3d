from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class RelayError(Exception):
    status_code: int
    message: str
    code: str | None = None
    details: str | None = None

    def __str__(self) -> str:
        return self.message

    def to_envelope(self) -> dict[str, Any]:
        envelope: dict[str, Any] = {"error": self.message}
        if self.details:
            envelope["details"] = self.details
        return envelope


class InvalidInput(RelayError):
    def __init__(self, message: str = "Prompt is required.", details: str | None = None):
        super().__init__(400, message, "invalid_input", details)


class BackendNotConfigured(RelayError):
    def __init__(self, message: str, details: str | None = None):
        super().__init__(500, message, "backend_not_configured", details)


class UpstreamUnavailable(RelayError):
    def __init__(self, message: str, details: str | None = None):
        super().__init__(500, message, "upstream_unavailable", details)


class UpstreamError(RelayError):
    def __init__(self, message: str, details: str | None = None):
        super().__init__(500, message, "upstream_error", details)


class UnrecognizedOutputShape(RelayError):
    """Upstream output matched none of the known shapes.

    ``details`` carries a structural description of what arrived (type
    name, key or attribute names), never the payload.
    """

    def __init__(self, message: str, details: str | None = None):
        super().__init__(500, message, "unrecognized_output_shape", details)


class EmptyPayload(RelayError):
    def __init__(self, message: str, details: str | None = None):
        super().__init__(500, message, "empty_payload", details)


def map_relay_error(exc: Exception, prefix: str) -> RelayError:
    """Map any failure raised while serving a generation request to a RelayError."""

    if isinstance(exc, RelayError):
        return RelayError(
            status_code=exc.status_code,
            message=f"{prefix}: {exc.message}",
            code=exc.code,
            details=exc.details,
        )

    return RelayError(
        status_code=500,
        message=f"{prefix}: {exc}",
        code="internal_error",
        details=type(exc).__name__,
    )
