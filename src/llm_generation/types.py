from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from .errors import EmptyContextError, InvalidRequestError


class OutputShape(str, Enum):
    TEXT = "text"
    OBJECT = "object"
    ARRAY = "array"
    ENUM = "enum"
    NO_SCHEMA = "no-schema"


@dataclass
class GenerationOptions:
    """Options forwarded to the backend alongside the prompt."""

    schema: dict[str, Any] | None = None
    schema_name: str | None = None
    schema_description: str | None = None
    allowed_values: tuple[str, ...] = ()
    stop: list[str] | None = None
    mode: Literal["auto", "json", "tool"] | None = None
    system_prompt: str | None = None
    model_config: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "schema": self.schema,
            "schema_name": self.schema_name,
            "schema_description": self.schema_description,
            "allowed_values": list(self.allowed_values) or None,
            "stop": self.stop,
            "mode": self.mode,
            "system_prompt": self.system_prompt,
        }
        data = {k: v for k, v in data.items() if v is not None}
        data.update(self.model_config)
        return data


@dataclass
class GenerationRequest:
    prompt: str
    output_shape: OutputShape = OutputShape.TEXT
    options: GenerationOptions = field(default_factory=GenerationOptions)

    def validate(self, function_name: str = "generate") -> None:
        """Fail fast on requests that must not reach the backend."""
        if not self.prompt or not self.prompt.strip():
            raise EmptyContextError(function_name)
        if self.output_shape is OutputShape.ENUM:
            values = self.options.allowed_values
            if not values:
                raise InvalidRequestError(f"{function_name} requires at least one allowed value")
            if len(set(values)) != len(values):
                raise InvalidRequestError(f"{function_name} allowed values must be unique: {list(values)}")


@dataclass(frozen=True)
class DecisionSpec:
    """A named yes/no question asked as part of a composite decision."""

    name: str
    question: str

    def prompt_for(self, prompt: str) -> str:
        return f"{prompt}\n{self.question}"


@dataclass
class ImageRequest:
    prompt: str
    width: int = 1024
    height: int = 1024
    count: int = 1
    seed: int | None = None
    negative_prompt: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def size(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass
class ImageResult:
    success: bool
    data: list[str] | None = None
    error: str | None = None


@dataclass
class ImageDescription:
    title: str
    description: str


@dataclass
class VerifiableInferenceResult:
    text: str
    proof: Any = None
    provider: str | None = None
    timestamp: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


__all__ = [
    "OutputShape",
    "GenerationOptions",
    "GenerationRequest",
    "DecisionSpec",
    "ImageRequest",
    "ImageResult",
    "ImageDescription",
    "VerifiableInferenceResult",
]
