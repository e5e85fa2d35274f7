"""
Top-level package for llm-generation.

Resilient, schema- and enum-constrained generation over a pluggable backend.
"""
from .backend import (
    Backend,
    CallableBackend,
    ImageBackend,
    ImageDescriptionService,
    VerifiableInferenceAdapter,
)
from .config import GeneratorConfig, LoggingConfig
from .errors import (
    EmptyContextError,
    GenerationError,
    NonRetryableError,
    ParseFailure,
    ServiceNotFoundError,
    TransientBackendError,
    VerificationFailure,
)
from .generator import ResilientGenerator
from .logging import GenerationLogger, StructuredLogger
from .retry import RetryPolicy, backoff_delay, execute_with_retry, next_retry
from .types import (
    DecisionSpec,
    GenerationOptions,
    GenerationRequest,
    ImageDescription,
    ImageRequest,
    ImageResult,
    OutputShape,
    VerifiableInferenceResult,
)

__all__ = [
    "ResilientGenerator",
    "GeneratorConfig",
    "LoggingConfig",
    "RetryPolicy",
    "execute_with_retry",
    "backoff_delay",
    "next_retry",
    "Backend",
    "CallableBackend",
    "ImageBackend",
    "ImageDescriptionService",
    "VerifiableInferenceAdapter",
    "GenerationLogger",
    "StructuredLogger",
    "OutputShape",
    "GenerationOptions",
    "GenerationRequest",
    "DecisionSpec",
    "ImageRequest",
    "ImageResult",
    "ImageDescription",
    "VerifiableInferenceResult",
    "GenerationError",
    "EmptyContextError",
    "TransientBackendError",
    "NonRetryableError",
    "ParseFailure",
    "VerificationFailure",
    "ServiceNotFoundError",
]
