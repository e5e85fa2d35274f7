"""
Structured Logging for the generator.

This module provides:
- The logging capability the generator and retry loop report to
- Structured JSON or text logging with consistent fields
- Log context merged into every record
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

# =============================================================================
# Logging Capability
# =============================================================================


@runtime_checkable
class GenerationLogger(Protocol):
    """
    Events emitted by the generator.

    The generator reports exactly four structured events: a function-entry
    trace, each failed attempt, each computed backoff delay and terminal
    failures. Where they end up is up to the implementation.
    """

    def log_function_call(self, function_name: str, caller: str | None = None) -> None: ...

    def log_retry_attempt(self, attempt: int, max_attempts: int, error: BaseException) -> None: ...

    def log_backoff(self, delay: float) -> None: ...

    def log_terminal_failure(self, error: BaseException, **kwargs: Any) -> None: ...

    def debug(self, message: str, **kwargs: Any) -> None: ...

    def info(self, message: str, **kwargs: Any) -> None: ...

    def warning(self, message: str, **kwargs: Any) -> None: ...

    def error(self, message: str, **kwargs: Any) -> None: ...


# =============================================================================
# Log Context
# =============================================================================


@dataclass
class LogContext:
    """Context information attached to log records."""

    agent: str | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d = {k: v for k, v in asdict(self).items() if v is not None and k != "extra"}
        d.update(self.extra)
        return d

    def with_update(self, **kwargs) -> LogContext:
        """Create a new context with updated values."""
        return LogContext(
            agent=kwargs.get("agent", self.agent),
            operation=kwargs.get("operation", self.operation),
            extra={**self.extra, **kwargs.get("extra", {})},
        )


# =============================================================================
# Structured Logger
# =============================================================================


class StructuredLogger:
    """
    Logger with structured JSON output and context tracking.

    Example:
        ```python
        logger = StructuredLogger("llm_generation", json_output=False)
        logger.set_context(agent="eliza")
        logger.log_function_call("generate_text", caller="eliza")
        ```
    """

    def __init__(
        self,
        name: str = "llm_generation",
        level: str = "INFO",
        json_output: bool = True,
        max_field_length: int = 500,
    ):
        self.name = name
        self.json_output = json_output
        self.max_field_length = max_field_length

        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, level.upper()))

        self._context: LogContext = LogContext()

        # Configure handler if not already configured
        if not self._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            if json_output:
                handler.setFormatter(JSONFormatter())
            else:
                handler.setFormatter(TextFormatter())
            self._logger.addHandler(handler)

    @property
    def context(self) -> LogContext:
        return self._context

    def set_context(self, **kwargs) -> None:
        """Update the current log context."""
        self._context = self._context.with_update(**kwargs)

    def _log(
        self,
        level: int,
        message: str,
        event_type: str | None = None,
        data: dict[str, Any] | None = None,
        exc_info: BaseException | None = None,
    ) -> None:
        """Internal logging method."""
        record_data = {
            "message": message,
            **self._context.to_dict(),
        }

        if event_type:
            record_data["event_type"] = event_type

        if data:
            record_data.update(data)

        if self.json_output:
            self._logger.log(level, json.dumps(record_data, default=str), exc_info=exc_info)
        else:
            extras = " ".join(f"{k}={v}" for k, v in record_data.items() if k != "message")
            self._logger.log(level, f"{message} {extras}".rstrip(), exc_info=exc_info)

    def debug(self, message: str, **kwargs) -> None:
        self._log(logging.DEBUG, message, data=kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log(logging.INFO, message, data=kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log(logging.WARNING, message, data=kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log(logging.ERROR, message, data=kwargs)

    # Typed logging methods

    def log_function_call(self, function_name: str, caller: str | None = None) -> None:
        """Log entry into a generator operation."""
        self._log(
            logging.INFO,
            f"Function call: {function_name}",
            event_type="function_call",
            data={"function_name": function_name, "caller": caller or "unknown"},
        )

    def log_retry_attempt(self, attempt: int, max_attempts: int, error: BaseException) -> None:
        """Log a failed attempt of a retried operation."""
        self._log(
            logging.ERROR,
            f"Operation failed (attempt {attempt}/{max_attempts})",
            event_type="retry_attempt",
            data={
                "attempt": attempt,
                "max_attempts": max_attempts,
                "error_type": type(error).__name__,
                "error_message": truncate_for_log(str(error), self.max_field_length),
            },
        )

    def log_backoff(self, delay: float) -> None:
        """Log the delay before the next attempt."""
        self._log(
            logging.DEBUG,
            f"Retrying in {delay * 1000:.0f}ms...",
            event_type="backoff",
            data={"delay_ms": int(delay * 1000)},
        )

    def log_terminal_failure(self, error: BaseException, **kwargs) -> None:
        """Log a failure that is propagated to the caller."""
        error_data = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            **kwargs,
        }

        if hasattr(error, "code"):
            error_data["error_code"] = str(error.code.value)
        if hasattr(error, "retryable"):
            error_data["retryable"] = error.retryable
        if getattr(error, "context", None) is not None and hasattr(error.context, "to_dict"):
            error_data["error_context"] = error.context.to_dict()

        self._log(
            logging.ERROR,
            f"Operation failed permanently: {error}",
            event_type="terminal_failure",
            data=error_data,
            exc_info=error,
        )


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }

        # Parse JSON message if present
        try:
            message_data = json.loads(record.getMessage())
            log_data.update(message_data)
        except (json.JSONDecodeError, TypeError):
            log_data["message"] = record.getMessage()

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        color = self.LEVEL_COLORS.get(record.levelname, "")
        reset = self.RESET if color else ""

        line = f"{timestamp} {color}{record.levelname:8}{reset} {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# =============================================================================
# Utilities
# =============================================================================


def truncate_for_log(text: str, max_length: int = 200) -> str:
    """Truncate text for logging."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + f"... ({len(text)} chars total)"


__all__ = [
    "GenerationLogger",
    "LogContext",
    "StructuredLogger",
    "JSONFormatter",
    "TextFormatter",
    "truncate_for_log",
]
