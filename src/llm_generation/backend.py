"""
Backend protocols.

This module defines the collaborators the generator is built on. Concrete
model providers implement these; the generator never talks to a provider SDK
directly.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from .types import (
    GenerationOptions,
    ImageDescription,
    ImageRequest,
    OutputShape,
    VerifiableInferenceResult,
)


@runtime_checkable
class Backend(Protocol):
    """
    Performs the actual generation.

    Returns text for ``OutputShape.TEXT``, one of ``options.allowed_values``
    for ``OutputShape.ENUM``, and a decoded object, list or JSON text for the
    structured shapes. Failures are raised.
    """

    async def generate(
        self,
        prompt: str,
        output_shape: OutputShape,
        options: GenerationOptions,
    ) -> Any:
        ...


@runtime_checkable
class ImageBackend(Protocol):
    async def generate_image(self, request: ImageRequest) -> list[str]:
        """Return one encoded image (URL or base64 payload) per requested image."""
        ...


@runtime_checkable
class ImageDescriptionService(Protocol):
    async def describe_image(self, image_url: str) -> ImageDescription:
        ...


@runtime_checkable
class VerifiableInferenceAdapter(Protocol):
    """Text generation that returns a proof alongside the output."""

    async def generate_text(
        self,
        prompt: str,
        options: GenerationOptions,
    ) -> VerifiableInferenceResult:
        ...

    async def verify_proof(self, result: VerifiableInferenceResult) -> bool:
        ...


GenerateFn = Callable[[str, OutputShape, GenerationOptions], Awaitable[Any]]


class CallableBackend:
    """Adapt a plain coroutine function to the ``Backend`` protocol."""

    def __init__(self, fn: GenerateFn, name: str | None = None) -> None:
        self._fn = fn
        self.name = name or getattr(fn, "__name__", "callable")

    async def generate(
        self,
        prompt: str,
        output_shape: OutputShape,
        options: GenerationOptions,
    ) -> Any:
        return await self._fn(prompt, output_shape, options)

    def __repr__(self) -> str:
        return f"CallableBackend({self.name!r})"


__all__ = [
    "Backend",
    "ImageBackend",
    "ImageDescriptionService",
    "VerifiableInferenceAdapter",
    "CallableBackend",
]
