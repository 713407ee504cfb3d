from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class GenerationBackend(Protocol):
    """Hosted generation capability invoked by the relay.

    ``run`` returns whatever the service produced; the relay normalizes it.
    """

    async def run(self, model: str, inputs: dict[str, Any]) -> Any: ...
