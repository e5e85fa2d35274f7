"""
Resilient structured generation.

``ResilientGenerator`` wraps a ``Backend`` with uniform retry semantics,
enum-constrained and schema-constrained generation, and a few convenience
call shapes built on top of them (boolean decisions, routing decisions,
composite decisions, images and captions).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import replace
from typing import Any

from .backend import Backend, ImageBackend, ImageDescriptionService, VerifiableInferenceAdapter
from .config import GeneratorConfig
from .errors import (
    EmptyContextError,
    ErrorContext,
    ParseFailure,
    ServiceNotFoundError,
    VerificationFailure,
    is_retryable,
)
from .logging import GenerationLogger, StructuredLogger, truncate_for_log
from .parsing import coerce_output, parse_json_object_from_text
from .retry import RetryPolicy, execute_with_retry
from .types import (
    DecisionSpec,
    GenerationOptions,
    GenerationRequest,
    ImageDescription,
    ImageRequest,
    ImageResult,
    OutputShape,
)

BOOL_VALUES: tuple[str, str] = ("true", "false")
RESPONSE_VALUES: tuple[str, str, str] = ("RESPOND", "IGNORE", "STOP")

TWEET_ACTIONS: tuple[DecisionSpec, ...] = (
    DecisionSpec("like", "Should I like this tweet?"),
    DecisionSpec("retweet", "Should I retweet this tweet?"),
    DecisionSpec("quote", "Should I quote this tweet?"),
    DecisionSpec("reply", "Should I reply to this tweet?"),
)


def _retry_parse_failures(error: BaseException) -> bool:
    return isinstance(error, ParseFailure) or is_retryable(error)


class ResilientGenerator:
    """
    Generator over an injected backend.

    Holds no per-request state; concurrent calls on one instance are
    independent.

    Example:
        ```python
        generator = ResilientGenerator(backend, config=GeneratorConfig(agent_name="eliza"))
        if await generator.generate_true_or_false("Is the sky blue?"):
            ...
        ```
    """

    def __init__(
        self,
        backend: Backend,
        *,
        logger: GenerationLogger | None = None,
        config: GeneratorConfig | None = None,
        image_backend: ImageBackend | None = None,
        image_description: ImageDescriptionService | None = None,
        verifiable_adapter: VerifiableInferenceAdapter | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self.backend = backend
        self.config = config or GeneratorConfig()
        if logger is None:
            structured = StructuredLogger(
                level=self.config.logging.level,
                json_output=self.config.logging.format == "json",
            )
            structured.set_context(agent=self.config.agent_name)
            logger = structured
        self.logger = logger
        self.image_backend = image_backend
        self.image_description = image_description
        self.verifiable_adapter = verifiable_adapter
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _trace(self, function_name: str) -> None:
        self.logger.log_function_call(function_name, self.config.agent_name)

    def _options(self, **kwargs: Any) -> GenerationOptions:
        return GenerationOptions(system_prompt=self.config.system_prompt, **kwargs)

    async def _retry(self, operation: Callable[[], Awaitable[Any]], policy: RetryPolicy | None = None) -> Any:
        return await execute_with_retry(
            operation,
            policy or self.config.retry,
            logger=self.logger,
            sleep=self._sleep,
        )

    def _validate(self, request: GenerationRequest, function_name: str) -> None:
        try:
            request.validate(function_name)
        except EmptyContextError as e:
            self.logger.error(str(e.message), function_name=function_name)
            raise

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    async def generate_text(
        self,
        prompt: str,
        *,
        stop: list[str] | None = None,
        verifiable_inference: bool | None = None,
        model_config: Mapping[str, Any] | None = None,
    ) -> str:
        """
        Generate free text.

        Not retried. When verifiable inference is enabled and an adapter is
        configured, the adapter produces the text and its proof is checked.

        Raises:
            EmptyContextError: ``prompt`` is empty.
            VerificationFailure: The adapter's proof did not validate.
        """
        self._trace("generate_text")
        request = GenerationRequest(
            prompt,
            OutputShape.TEXT,
            self._options(stop=stop, model_config=dict(model_config or {})),
        )
        self._validate(request, "generate_text")

        if verifiable_inference is None:
            verifiable_inference = self.config.verifiable_inference
        self.logger.info(
            "Generating text with options",
            backend=repr(self.backend),
            verifiable_inference=verifiable_inference,
        )

        if verifiable_inference and self.verifiable_adapter is not None:
            return await self._verifiable_text(request)

        text = await self.backend.generate(request.prompt, request.output_shape, request.options)
        return str(text)

    async def _verifiable_text(self, request: GenerationRequest) -> str:
        adapter = self.verifiable_adapter
        self.logger.info("Using verifiable inference adapter", adapter=type(adapter).__name__)
        try:
            result = await adapter.generate_text(request.prompt, request.options)
            self.logger.debug("Verifiable inference result", provider=result.provider)
            if not await adapter.verify_proof(result):
                raise VerificationFailure()
        except Exception as e:
            self.logger.log_terminal_failure(e, function_name="generate_text")
            raise
        return result.text

    async def generate_message_response(self, prompt: str) -> dict[str, Any]:
        """
        Generate text and read it as a JSON object.

        Unparseable output is retried like a transient failure.
        """
        self._trace("generate_message_response")
        request = GenerationRequest(prompt, OutputShape.TEXT, self._options())
        self._validate(request, "generate_message_response")
        self.logger.debug("Context", prompt=truncate_for_log(prompt))

        async def _attempt() -> dict[str, Any]:
            text = await self.backend.generate(request.prompt, request.output_shape, request.options)
            content = parse_json_object_from_text(str(text))
            if content is None:
                raise ParseFailure("Failed to parse content", raw=text)
            return content

        policy = replace(self.config.retry, retry_predicate=_retry_parse_failures)
        return await self._retry(_attempt, policy)

    # ------------------------------------------------------------------
    # Enumerations
    # ------------------------------------------------------------------

    async def generate_enum(
        self,
        prompt: str,
        allowed_values: Sequence[str],
        *,
        function_name: str = "generate_enum",
    ) -> str | None:
        """
        Generate exactly one of ``allowed_values``.

        The prompt is validated before any backend call. The backend call is
        retried with the configured policy.

        Returns:
            A member of ``allowed_values``, or None if the backend produced
            no value.

        Raises:
            EmptyContextError: ``prompt`` is empty.
            ParseFailure: The backend answered with a value outside the set.
        """
        self._trace(function_name)
        request = GenerationRequest(
            prompt,
            OutputShape.ENUM,
            self._options(allowed_values=tuple(allowed_values)),
        )
        self._validate(request, function_name)

        async def _attempt() -> str | None:
            self.logger.debug(
                "Attempting to generate enum value",
                function_name=function_name,
                prompt=truncate_for_log(prompt),
            )
            value = await self.backend.generate(request.prompt, request.output_shape, request.options)
            self.logger.debug("Received enum response", function_name=function_name, value=value)
            if value is None:
                return None
            if isinstance(value, bool):
                # Decoded JSON booleans
                value = "true" if value else "false"
            value = str(value).strip()
            if value not in request.options.allowed_values:
                raise ParseFailure(
                    f"{value!r} is not one of {list(request.options.allowed_values)}",
                    raw=value,
                    context=ErrorContext(function_name=function_name, extra={"output_shape": "enum"}),
                )
            return value

        return await self._retry(_attempt)

    async def generate_should_respond(self, prompt: str) -> str | None:
        """Routing decision: ``RESPOND``, ``IGNORE`` or ``STOP``."""
        return await self.generate_enum(prompt, RESPONSE_VALUES, function_name="generate_should_respond")

    async def generate_true_or_false(self, prompt: str) -> bool:
        result = await self.generate_enum(prompt, BOOL_VALUES, function_name="generate_true_or_false")
        return result == "true"

    async def generate_composite_decision(
        self,
        prompt: str,
        decisions: Sequence[DecisionSpec],
        *,
        mandatory: Sequence[str] | None = None,
        function_name: str = "generate_composite_decision",
    ) -> dict[str, bool] | None:
        """
        Evaluate independent yes/no decisions and bundle them.

        Each decision is asked separately, in order, with its question
        appended to ``prompt``. ``mandatory`` names the decisions that must
        resolve (default: the first two); if any of them yields no value the
        whole result is None. Any failure while evaluating also yields None.
        Optional decisions without a value count as False.
        """
        self._trace(function_name)
        if mandatory is None:
            mandatory = [d.name for d in decisions[:2]]

        try:
            resolved: dict[str, str | None] = {}
            for decision in decisions:
                resolved[decision.name] = await self.generate_enum(
                    decision.prompt_for(prompt),
                    BOOL_VALUES,
                    function_name=f"{function_name}_{decision.name}",
                )

            if any(not resolved.get(name) for name in mandatory):
                self.logger.debug("Required decisions missing", function_name=function_name)
                return None

            return {name: value == "true" for name, value in resolved.items()}
        except Exception as e:
            self.logger.error(
                f"Error in {function_name}",
                error_type=type(e).__name__,
                error_message=truncate_for_log(str(e)),
            )
            return None

    async def generate_tweet_actions(self, prompt: str) -> dict[str, bool] | None:
        """Decide like / retweet / quote / reply; like and retweet are mandatory."""
        return await self.generate_composite_decision(
            prompt,
            TWEET_ACTIONS,
            mandatory=("like", "retweet"),
            function_name="generate_tweet_actions",
        )

    # ------------------------------------------------------------------
    # Structured objects
    # ------------------------------------------------------------------

    async def generate_object(
        self,
        prompt: str,
        *,
        output: OutputShape = OutputShape.OBJECT,
        schema: dict[str, Any] | None = None,
        schema_name: str | None = None,
        schema_description: str | None = None,
        stop: list[str] | None = None,
        mode: str | None = None,
        model_config: Mapping[str, Any] | None = None,
    ) -> Any:
        """
        Generate a value of the requested shape with a single backend call.

        Args:
            prompt: Non-empty prompt.
            output: ``OBJECT``, ``ARRAY`` or ``NO_SCHEMA``.
            schema: Optional JSON schema the result must satisfy.

        Raises:
            EmptyContextError: ``prompt`` is empty.
            ParseFailure: The output cannot be read as ``output``/``schema``.
        """
        self._trace("generate_object")
        request = GenerationRequest(
            prompt,
            output,
            self._options(
                schema=schema,
                schema_name=schema_name,
                schema_description=schema_description,
                stop=stop,
                mode=mode,
                model_config=dict(model_config or {}),
            ),
        )
        self._validate(request, "generate_object")

        self.logger.debug(
            f"Generating object with {self.backend!r}",
            output=output.value,
            schema_name=schema_name,
        )
        raw = await self.backend.generate(request.prompt, request.output_shape, request.options)
        self.logger.debug("Received object response", output=output.value)
        return coerce_output(raw, output, schema)

    async def generate_text_array(self, prompt: str) -> list[str]:
        """Array-shaped generation retried with the configured policy."""
        self._trace("generate_text_array")
        self._validate(GenerationRequest(prompt, OutputShape.ARRAY), "generate_text_array")

        async def _attempt() -> list[str]:
            items = await self.generate_object(prompt, output=OutputShape.ARRAY)
            self.logger.debug("Received response from generate_object", count=len(items))
            return [str(item) for item in items]

        return await self._retry(_attempt)

    async def generate_object_array(self, prompt: str) -> list[Any]:
        """
        Array-shaped generation that degrades instead of failing.

        An empty prompt or output that is not an array yields ``[]``.
        """
        self._trace("generate_object_array")
        if not prompt or not prompt.strip():
            self.logger.error("generate_object_array context is empty")
            return []
        try:
            result = await self.generate_object(prompt, output=OutputShape.ARRAY)
        except ParseFailure as e:
            self.logger.warning(
                "generate_object_array received malformed output",
                error_message=truncate_for_log(str(e)),
            )
            return []
        return result if isinstance(result, list) else []

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    async def generate_image(self, request: ImageRequest) -> ImageResult:
        """Generate images, retried with ``config.image_retry``."""
        self._trace("generate_image")
        if self.image_backend is None:
            self.logger.warning("No model settings found for the image model provider.")
            return ImageResult(success=False, error="No model settings available")
        if not request.prompt or not request.prompt.strip():
            raise EmptyContextError("generate_image")

        self.logger.info(
            "Generating image with options",
            image_backend=type(self.image_backend).__name__,
            size=request.size,
            count=request.count,
        )
        images = await self._retry(
            lambda: self.image_backend.generate_image(request),
            self.config.image_retry,
        )
        return ImageResult(success=True, data=list(images))

    async def generate_caption(self, image_url: str) -> ImageDescription:
        self._trace("generate_caption")
        if self.image_description is None:
            raise ServiceNotFoundError("Image description")

        resp = await self.image_description.describe_image(image_url)
        return ImageDescription(
            title=resp.title.strip(),
            description=resp.description.strip(),
        )


__all__ = [
    "BOOL_VALUES",
    "RESPONSE_VALUES",
    "TWEET_ACTIONS",
    "ResilientGenerator",
]
