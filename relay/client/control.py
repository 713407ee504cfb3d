"""Per-control request state for a presentation layer.

A ``GenerationControl`` owns everything one UI affordance needs: the
caller, a gate that refuses a second request while one is in flight, and a
``LoadingTicker`` that cycles a label until the request settles. Status
changes are pushed to a presenter callback instead of touching globals.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Sequence, TypeVar

from .caller import (
    ClientError,
    GeneratedImage,
    GeneratedText,
    RelayClient,
    RequestInFlight,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_LOADING_PHRASES = (
    "Generating...",
    "Mixing pixels...",
    "Consulting the model...",
    "Almost there...",
)


class Status(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(slots=True)
class ControlUpdate:
    status: Status
    label: str
    message: str | None = None
    image: GeneratedImage | None = None
    text: GeneratedText | None = None


Presenter = Callable[[ControlUpdate], None]


class LoadingTicker:
    """Cancellable task that reports the next loading phrase every ``interval`` seconds."""

    def __init__(
        self,
        on_phrase: Callable[[str], None],
        phrases: Sequence[str] = DEFAULT_LOADING_PHRASES,
        interval: float = 2.0,
    ) -> None:
        if not phrases:
            raise ValueError("phrases must not be empty")
        self._on_phrase = on_phrase
        self._phrases = tuple(phrases)
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._on_phrase(self._phrases[0])
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        index = 1
        while True:
            await asyncio.sleep(self._interval)
            self._on_phrase(self._phrases[index % len(self._phrases)])
            index += 1


@dataclass
class GenerationControl:
    client: RelayClient
    presenter: Presenter
    idle_label: str = "Generate"
    phrases: Sequence[str] = DEFAULT_LOADING_PHRASES
    interval: float = 2.0
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def generate_image(self, prompt: str) -> GeneratedImage | None:
        image = await self._submit(prompt, self.client.generate_image)
        if image is not None:
            self._present(Status.SUCCESS, message="Image generated successfully!", image=image)
        return image

    async def generate_text(self, prompt: str) -> GeneratedText | None:
        generated = await self._submit(prompt, self.client.generate_text)
        if generated is not None:
            self._present(Status.SUCCESS, message="Text generated successfully!", text=generated)
        return generated

    async def _submit(
        self,
        prompt: str,
        call: Callable[[str], Awaitable[T]],
    ) -> T | None:
        prompt = prompt.strip()
        if not prompt:
            self._present(Status.IDLE, message="Please enter a prompt.")
            return None

        if self._lock.locked():
            raise RequestInFlight("A request is already in progress for this control.")

        async with self._lock:
            ticker = LoadingTicker(
                lambda phrase: self._present(Status.LOADING, label=phrase),
                phrases=self.phrases,
                interval=self.interval,
            )
            ticker.start()
            failure: ClientError | None = None
            try:
                result = await call(prompt)
            except ClientError as exc:
                failure = exc
            finally:
                await ticker.stop()

        if failure is not None:
            logger.error("Generation request failed: %s", failure)
            self._present(Status.ERROR, message=f"Error: {failure}")
            return None
        return result

    def _present(
        self,
        status: Status,
        label: str | None = None,
        message: str | None = None,
        image: GeneratedImage | None = None,
        text: GeneratedText | None = None,
    ) -> None:
        self.presenter(
            ControlUpdate(
                status=status,
                label=label or self.idle_label,
                message=message,
                image=image,
                text=text,
            )
        )
