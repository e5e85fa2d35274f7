"""
Error taxonomy for llm-generation.

This module provides a hierarchical exception system with:
- Error codes for programmatic handling
- Retryable vs non-retryable classification
- Structured context for debugging
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for the generator."""

    # Request errors (1xxx)
    INVALID_REQUEST = "ERR_1000"
    EMPTY_CONTEXT = "ERR_1001"

    # Backend errors (2xxx)
    BACKEND_ERROR = "ERR_2000"
    BACKEND_TRANSIENT = "ERR_2001"
    BACKEND_NON_RETRYABLE = "ERR_2002"
    SERVICE_NOT_FOUND = "ERR_2003"

    # Output errors (3xxx)
    PARSE_FAILURE = "ERR_3000"
    VERIFICATION_FAILURE = "ERR_3001"

    # Configuration errors (6xxx)
    CONFIG_ERROR = "ERR_6000"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


@dataclass
class ErrorContext:
    """Structured context for error debugging."""

    function_name: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "function_name": self.function_name,
            **self.extra,
        }


class GenerationError(Exception):
    """
    Base exception for all generation errors.

    Attributes:
        code: Standardized error code for programmatic handling
        message: Human-readable error message
        retryable: Whether the operation can be retried
        context: Structured debugging context
        cause: Original exception that caused this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [f"[{self.code.value}] {self.message}"]
        if self.context.function_name:
            parts.append(f"(function={self.context.function_name})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# Request Errors
# =============================================================================


class InvalidRequestError(GenerationError, ValueError):
    """Request is malformed and must not reach the backend."""

    code = ErrorCode.INVALID_REQUEST
    retryable = False


class EmptyContextError(InvalidRequestError):
    """Prompt is empty. Raised before any backend call, never retried."""

    code = ErrorCode.EMPTY_CONTEXT

    def __init__(self, function_name: str = "generate", **kwargs):
        context = kwargs.pop("context", None) or ErrorContext(function_name=function_name)
        super().__init__(f"{function_name} context is empty", context=context, **kwargs)
        self.function_name = function_name


# =============================================================================
# Backend Errors
# =============================================================================


class BackendError(GenerationError):
    """Base class for failures reported by a generation backend."""

    code = ErrorCode.BACKEND_ERROR
    retryable = True


class TransientBackendError(BackendError):
    """Temporary backend failure. Retried up to the policy limits."""

    code = ErrorCode.BACKEND_TRANSIENT
    retryable = True

    def __init__(
        self,
        message: str = "Transient backend failure",
        **kwargs,
    ):
        super().__init__(message, **kwargs)


class NonRetryableError(BackendError):
    """Malformed call shape or other failure that will not succeed on retry."""

    code = ErrorCode.BACKEND_NON_RETRYABLE
    retryable = False


class ServiceNotFoundError(BackendError):
    """A required collaborator service was not provided."""

    code = ErrorCode.SERVICE_NOT_FOUND
    retryable = False

    def __init__(self, service: str, **kwargs):
        super().__init__(f"{service} service not found", **kwargs)
        self.service = service


# =============================================================================
# Output Errors
# =============================================================================


class ParseFailure(GenerationError, ValueError):
    """Backend output cannot be coerced into the requested shape."""

    code = ErrorCode.PARSE_FAILURE
    retryable = False

    def __init__(
        self,
        message: str = "Failed to parse backend output",
        *,
        raw: Any = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.raw = raw


class VerificationFailure(GenerationError):
    """Proof attached to a verifiable inference result did not validate."""

    code = ErrorCode.VERIFICATION_FAILURE
    retryable = False

    def __init__(self, message: str = "Failed to verify inference proof", **kwargs):
        super().__init__(message, **kwargs)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(GenerationError, ValueError):
    """Invalid generator configuration."""

    code = ErrorCode.CONFIG_ERROR
    retryable = False


def is_retryable(error: BaseException) -> bool:
    """
    Check if an error is retryable.

    Generation errors carry their own flag. Type and syntax errors signal a
    malformed call and are never retried; anything else is assumed transient.
    """
    if isinstance(error, GenerationError):
        return error.retryable
    if isinstance(error, (TypeError, SyntaxError)):
        return False
    return True


__all__ = [
    "ErrorCode",
    "ErrorContext",
    "GenerationError",
    "InvalidRequestError",
    "EmptyContextError",
    "BackendError",
    "TransientBackendError",
    "NonRetryableError",
    "ServiceNotFoundError",
    "ParseFailure",
    "VerificationFailure",
    "ConfigError",
    "is_retryable",
]
