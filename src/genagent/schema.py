# schema.py
# Response-schema helpers: instructions for the model, JSON extraction from
# free text, and validation-error feedback.

import json
import re
from typing import Any

from pydantic import TypeAdapter, ValidationError

_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)


class ResponseParseError(ValueError):
    """Raised when no JSON value can be recovered from a model response."""


def adapter_for(schema: Any) -> TypeAdapter:
    return schema if isinstance(schema, TypeAdapter) else TypeAdapter(schema)


def create_schema_instructions(schema: Any) -> str:
    json_schema = adapter_for(schema).json_schema()
    return (
        "You must respond with valid JSON that matches the following schema:\n\n"
        f"{json.dumps(json_schema, indent=2)}\n\n"
        "IMPORTANT:\n"
        "- Your response must be ONLY valid JSON matching this schema\n"
        "- Do not include any explanatory text before or after the JSON\n"
        "- Ensure all required fields are present\n"
        "- Ensure all field types match the schema exactly"
    )


def extract_json(text: str) -> Any:
    """
    Parse `text` as JSON, falling back to the outermost {...} span.

    Raises ResponseParseError when neither yields valid JSON.
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    match = _JSON_BLOCK.search(text)
    if not match:
        raise ResponseParseError("Response does not contain valid JSON")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise ResponseParseError(f"Embedded JSON is malformed: {exc}") from exc


def format_validation_error(error: ValidationError) -> str:
    issues = []
    for issue in error.errors():
        path = ".".join(str(part) for part in issue["loc"]) or "root"
        issues.append(f"  - {path}: {issue['msg']}")
    return (
        "Your previous response did not match the required schema. "
        "Please fix the following validation errors:\n\n"
        + "\n".join(issues)
        + "\n\nPlease provide a corrected response that addresses all these errors."
    )


def format_parse_error(error: Exception) -> str:
    return (
        f"Your response could not be parsed as valid JSON. Error: {error}\n\n"
        "Please provide a valid JSON response matching the required schema."
    )
