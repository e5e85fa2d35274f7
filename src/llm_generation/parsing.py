"""Coercion of backend output into the requested shape.

Backends may hand back decoded objects or raw text. This module turns raw
text into JSON values (accepting fenced code blocks) and checks the result
against the requested ``OutputShape`` and optional JSON schema.
"""

from __future__ import annotations

import json
from typing import Any

import jsonschema
from jsonschema.exceptions import SchemaError
from jsonschema.exceptions import ValidationError as JsonSchemaValidationError

from .errors import ParseFailure
from .types import OutputShape


def extract_json(content: str) -> str:
    """Extract JSON from potential markdown code blocks.

    Handles:
    - Plain JSON
    - ```json ... ``` blocks
    - ``` ... ``` blocks, also when surrounded by prose
    """
    content = content.strip()

    start = content.find("```")
    if start != -1:
        body = content[start + 3:]
        # Drop the language tag line (```json)
        newline = body.find("\n")
        if newline != -1 and body[:newline].strip().isalnum():
            body = body[newline + 1:]
        end = body.find("```")
        if end != -1:
            body = body[:end]
        content = body

    return content.strip()


def parse_json_from_text(text: str) -> Any:
    """Decode JSON text, raising ``ParseFailure`` when it is not JSON."""
    try:
        return json.loads(extract_json(text))
    except (json.JSONDecodeError, TypeError) as e:
        raise ParseFailure(f"JSON parse error: {e}", raw=text, cause=e) from e


def parse_json_object_from_text(text: str) -> dict[str, Any] | None:
    """Return the JSON object in ``text``, or None if there is none."""
    try:
        data = parse_json_from_text(text)
    except ParseFailure:
        # Fall back to the outermost braces in free-form text
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def validate_against_schema(data: Any, schema: dict[str, Any]) -> list[str]:
    """Validate data against a JSON schema; return the error messages."""
    try:
        jsonschema.validate(instance=data, schema=schema)
    except JsonSchemaValidationError as e:
        return [e.message]
    except SchemaError as e:
        return [f"Invalid schema: {e.message}"]
    return []


def coerce_output(value: Any, shape: OutputShape, schema: dict[str, Any] | None = None) -> Any:
    """
    Interpret ``value`` as ``shape``.

    Raises:
        ParseFailure: The value cannot be read as the requested shape or does
            not satisfy ``schema``.
    """
    if shape in (OutputShape.TEXT, OutputShape.NO_SCHEMA, OutputShape.ENUM):
        if shape is OutputShape.NO_SCHEMA and isinstance(value, str):
            try:
                return parse_json_from_text(value)
            except ParseFailure:
                return value
        return value

    if isinstance(value, bytes):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseFailure(f"Output is not valid UTF-8: {e}", raw=value, cause=e) from e
    if isinstance(value, str):
        value = parse_json_from_text(value)

    if shape is OutputShape.ARRAY and not isinstance(value, list):
        raise ParseFailure(f"Expected an array, got {type(value).__name__}", raw=value)
    if shape is OutputShape.OBJECT and not isinstance(value, dict):
        raise ParseFailure(f"Expected an object, got {type(value).__name__}", raw=value)

    if schema is not None:
        errors = validate_against_schema(value, schema)
        if errors:
            raise ParseFailure(
                f"Output does not match schema: {'; '.join(errors)}",
                raw=value,
            )

    return value


__all__ = [
    "extract_json",
    "parse_json_from_text",
    "parse_json_object_from_text",
    "validate_against_schema",
    "coerce_output",
]
