"""
JSON Schema validation service.

The NDJSON parser compiles the FHIR resource envelope once with
``compile_schema`` and checks every decoded line through ``schema_errors``.
All errors are collected rather than stopping at the first one.
"""

from typing import Any

import jsonschema


def compile_schema(schema: dict[str, Any]) -> jsonschema.Draft7Validator:
    """Check the schema itself and return a reusable validator."""
    jsonschema.Draft7Validator.check_schema(schema)
    return jsonschema.Draft7Validator(schema)


def schema_errors(validator: jsonschema.Draft7Validator, data: Any) -> list[str]:
    """Error messages for ``data`` (empty list = valid)."""
    return [error.message for error in validator.iter_errors(data)]


def validate_against_schema(data: Any, schema: dict[str, Any]) -> list[str]:
    """One-off validation against an uncompiled schema."""
    return schema_errors(compile_schema(schema), data)
