"""
JSON Schema Utilities for structured LLM output.

Provides helpers for transforming Pydantic schemas to meet OpenAI's strict
mode requirements and for validating what comes back.
"""

import json
import re
from typing import Any, Type, TypeVar
from pydantic import BaseModel, ValidationError as PydanticValidationError

from tutor.exceptions import ValidationError


T = TypeVar("T", bound=BaseModel)


def get_strict_schema(model: Type[BaseModel]) -> dict[str, Any]:
    """
    Get a strict JSON schema from a Pydantic model.

    - All objects have additionalProperties: false
    - All properties are in the required array
    - $ref references have no sibling keywords
    """
    return make_schema_strict(model.model_json_schema())


def make_schema_strict(schema: dict[str, Any]) -> dict[str, Any]:
    """Transform a JSON schema to meet OpenAI's strict mode requirements."""
    def transform(obj: Any) -> Any:
        if not isinstance(obj, dict):
            return obj

        if "$ref" in obj:
            return {"$ref": obj["$ref"]}

        result = {}
        for key, value in obj.items():
            if key == "default":
                continue
            if key == "$defs":
                result[key] = {k: transform(v) for k, v in value.items()}
            elif isinstance(value, dict):
                result[key] = transform(value)
            elif isinstance(value, list):
                result[key] = [transform(item) for item in value]
            else:
                result[key] = value

        if result.get("type") == "object" and "properties" in result:
            result["additionalProperties"] = False
            result["required"] = list(result["properties"].keys())

        return result

    return transform(schema)


def validate_output(output: Any, model: Type[T], source: str = "unknown") -> T:
    """Validate a parsed LLM payload against a Pydantic model."""
    try:
        return model.model_validate(output)
    except PydanticValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ValidationError(f"{source} output does not match {model.__name__}", errors) from e


def extract_json_from_text(text: str) -> str:
    """Extract a JSON object from text that may contain other content."""
    code_block_match = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", text, re.DOTALL)
    if code_block_match:
        return code_block_match.group(1)

    json_match = re.search(r"\{.*\}", text, re.DOTALL)
    if json_match:
        return json_match.group()

    raise ValueError("No JSON object found in text")


def parse_json_safely(text: str, source: str = "unknown") -> dict[str, Any]:
    """Parse a JSON object from LLM text, tolerating surrounding prose or code fences."""
    if not isinstance(text, str) or not text.strip():
        raise ValidationError(f"{source} returned an empty response")
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        try:
            value = json.loads(extract_json_from_text(text))
        except (ValueError, json.JSONDecodeError) as e:
            raise ValidationError(f"{source} returned invalid JSON", [str(e)]) from e
    if not isinstance(value, dict):
        raise ValidationError(f"{source} returned JSON that is not an object")
    return value
