"""
Generator configuration.

Configuration can be constructed programmatically, loaded from environment
variables (a nearby `.env` is honored) or read from a YAML/TOML file.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Literal

import jsonschema
import yaml
from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError
from .retry import RetryPolicy

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]


_RETRY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "max_attempts": {"type": "integer", "minimum": 1},
        "initial_delay": {"type": "number", "minimum": 0},
        "max_delay": {"type": "number", "minimum": 0},
    },
    "additionalProperties": False,
}

CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "agent_name": {"type": "string", "minLength": 1},
        "system_prompt": {"type": ["string", "null"]},
        "verifiable_inference": {"type": "boolean"},
        "retry": _RETRY_SCHEMA,
        "image_retry": _RETRY_SCHEMA,
        "logging": {
            "type": "object",
            "properties": {
                "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
                "format": {"type": "string", "enum": ["text", "json"]},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: LogLevel = "INFO"
    format: LogFormat = "text"

    def __post_init__(self):
        """Validate configuration after initialization."""
        valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if self.level not in valid_levels:
            raise ConfigError(f"Invalid log level: {self.level}. Must be one of {valid_levels}")
        valid_formats = ("text", "json")
        if self.format not in valid_formats:
            raise ConfigError(f"Invalid log format: {self.format}. Must be one of {valid_formats}")


@dataclass
class GeneratorConfig:
    """
    Configuration for ``ResilientGenerator``.

    Attributes:
        retry: Policy for enum, array and message generation.
        image_retry: Policy for image generation (fewer attempts, longer wait).
        agent_name: Caller identity reported in function-entry traces.
        system_prompt: System prompt forwarded to the backend.
        verifiable_inference: Route text generation through the verifiable
            inference adapter when one is available.
        logging: Logger settings.
    """

    retry: RetryPolicy = field(default_factory=RetryPolicy)
    image_retry: RetryPolicy = field(
        default_factory=lambda: RetryPolicy(max_attempts=2, initial_delay=2.0, max_delay=8.0)
    )
    agent_name: str = "agent"
    system_prompt: str | None = None
    verifiable_inference: bool = False
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.agent_name:
            raise ConfigError("agent_name cannot be empty")
        if not isinstance(self.retry, RetryPolicy) or not isinstance(self.image_retry, RetryPolicy):
            raise ConfigError("retry and image_retry must be RetryPolicy instances")

    @classmethod
    def from_env(cls, prefix: str = "GEN_") -> GeneratorConfig:
        """
        Load configuration from environment variables.

        Example:
            GEN_MAX_ATTEMPTS=5
            GEN_INITIAL_DELAY=0.5
            GEN_AGENT_NAME=eliza
            GEN_LOG_FORMAT=json
        """
        load_dotenv(find_dotenv(usecwd=True), override=False)

        try:
            retry = RetryPolicy(
                max_attempts=int(os.getenv(f"{prefix}MAX_ATTEMPTS", "3")),
                initial_delay=float(os.getenv(f"{prefix}INITIAL_DELAY", "1.0")),
                max_delay=float(os.getenv(f"{prefix}MAX_DELAY", "8.0")),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid retry settings: {e}", cause=e) from e

        config = cls(retry=retry)

        if agent_name := os.getenv(f"{prefix}AGENT_NAME"):
            config.agent_name = agent_name
        if system_prompt := os.getenv(f"{prefix}SYSTEM_PROMPT") or os.getenv("SYSTEM_PROMPT"):
            config.system_prompt = system_prompt

        verifiable = os.getenv(f"{prefix}VERIFIABLE_INFERENCE") or os.getenv("VERIFIABLE_INFERENCE_ENABLED")
        if verifiable:
            config.verifiable_inference = verifiable.lower() == "true"

        level = os.getenv(f"{prefix}LOG_LEVEL", config.logging.level).upper()
        log_format = os.getenv(f"{prefix}LOG_FORMAT", config.logging.format).lower()
        config.logging = LoggingConfig(level=level, format=log_format)  # type: ignore[arg-type]

        return config

    @classmethod
    def from_file(cls, path: str | Path) -> GeneratorConfig:
        """
        Load configuration from a YAML or TOML file.

        Args:
            path: Path to configuration file (.yaml, .yml, or .toml)

        Returns:
            GeneratorConfig with values from file
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            raise ConfigError(f"Unsupported config file format: {suffix}")

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GeneratorConfig:
        """
        Create a config from a dictionary.

        The dictionary is validated against ``CONFIG_SCHEMA`` first.
        """
        try:
            jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ConfigError(f"Configuration validation failed: {e.message}", cause=e) from e

        config = cls()
        try:
            if "retry" in data:
                config.retry = replace(config.retry, **data["retry"])
            if "image_retry" in data:
                config.image_retry = replace(config.image_retry, **data["image_retry"])
        except ValueError as e:
            raise ConfigError(f"Invalid retry settings: {e}", cause=e) from e

        if "agent_name" in data:
            config.agent_name = data["agent_name"]
        if "system_prompt" in data:
            config.system_prompt = data["system_prompt"]
        if "verifiable_inference" in data:
            config.verifiable_inference = data["verifiable_inference"]
        if "logging" in data:
            config.logging = LoggingConfig(**data["logging"])

        return config


__all__ = ["CONFIG_SCHEMA", "LoggingConfig", "GeneratorConfig"]
