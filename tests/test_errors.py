"""
Tests for the error taxonomy.
"""
import pytest

from llm_generation.errors import (
    ConfigError,
    EmptyContextError,
    ErrorCode,
    ErrorContext,
    GenerationError,
    InvalidRequestError,
    NonRetryableError,
    ParseFailure,
    ServiceNotFoundError,
    TransientBackendError,
    VerificationFailure,
    is_retryable,
)


class TestErrorCodes:
    """Test error code enumeration."""

    def test_error_codes_unique(self):
        """Test that all error codes are unique."""
        values = [e.value for e in ErrorCode]
        assert len(values) == len(set(values))


class TestGenerationError:
    """Test the base error."""

    def test_str_includes_code_and_function(self):
        error = GenerationError("failed", context=ErrorContext(function_name="generate_enum"))
        assert str(error) == f"[{ErrorCode.INTERNAL_ERROR.value}] failed (function=generate_enum)"

    def test_to_dict(self):
        cause = RuntimeError("socket closed")
        error = TransientBackendError("backend down", cause=cause)

        d = error.to_dict()

        assert d["error_type"] == "TransientBackendError"
        assert d["code"] == ErrorCode.BACKEND_TRANSIENT.value
        assert d["retryable"] is True
        assert d["cause"] == "socket closed"
        assert d["context"] == {"function_name": None}

    def test_retryable_override(self):
        assert GenerationError("x", retryable=True).retryable is True


class TestErrorKinds:
    """Test the concrete error kinds."""

    def test_empty_context(self):
        error = EmptyContextError("generate_text")

        assert error.message == "generate_text context is empty"
        assert error.function_name == "generate_text"
        assert error.context.function_name == "generate_text"
        assert isinstance(error, InvalidRequestError)
        assert isinstance(error, ValueError)
        assert error.retryable is False

    def test_parse_failure_is_value_error(self):
        assert isinstance(ParseFailure(), ValueError)

    def test_service_not_found(self):
        error = ServiceNotFoundError("Image description")
        assert error.message == "Image description service not found"
        assert error.service == "Image description"

    def test_config_error(self):
        assert isinstance(ConfigError("bad"), ValueError)

    def test_context_extra_flattened(self):
        ctx = ErrorContext(function_name="generate_enum", extra={"output_shape": "enum"})
        assert ctx.to_dict() == {"function_name": "generate_enum", "output_shape": "enum"}


class TestIsRetryable:
    """Test retryable classification."""

    @pytest.mark.parametrize(
        "error,expected",
        [
            (TransientBackendError(), True),
            (NonRetryableError("x"), False),
            (VerificationFailure(), False),
            (ParseFailure(), False),
            (EmptyContextError(), False),
            (TypeError("x"), False),
            (SyntaxError("x"), False),
            (ConnectionError(), True),
            (RuntimeError("x"), True),
        ],
    )
    def test_classification(self, error, expected):
        assert is_retryable(error) is expected
