"""Tests for the FHIR resource envelope schema."""

import jsonschema
import pytest

from app.schemas.fhir import FHIR_RESOURCE_ENVELOPE_SCHEMA
from app.services.validation import compile_schema, schema_errors, validate_against_schema


def test_valid_resource():
    errors = validate_against_schema(
        {"resourceType": "Patient", "id": "p1", "gender": "female"},
        FHIR_RESOURCE_ENVELOPE_SCHEMA,
    )
    assert errors == []


def test_missing_resource_type():
    errors = validate_against_schema({"id": "p1"}, FHIR_RESOURCE_ENVELOPE_SCHEMA)
    assert any("resourceType" in e for e in errors)


def test_resource_type_must_be_non_empty_string():
    assert validate_against_schema({"resourceType": 7}, FHIR_RESOURCE_ENVELOPE_SCHEMA)
    assert validate_against_schema({"resourceType": ""}, FHIR_RESOURCE_ENVELOPE_SCHEMA)


def test_non_object_rejected():
    assert validate_against_schema(["Patient"], FHIR_RESOURCE_ENVELOPE_SCHEMA)


def test_non_discriminator_fields_unconstrained():
    for resource in (
        {"resourceType": "Patient", "id": 123},
        {"resourceType": "Patient", "id": None},
        {"resourceType": "Patient"},
    ):
        assert validate_against_schema(resource, FHIR_RESOURCE_ENVELOPE_SCHEMA) == []


def test_compiled_validator_reused():
    validator = compile_schema(FHIR_RESOURCE_ENVELOPE_SCHEMA)
    assert schema_errors(validator, {"resourceType": "Encounter"}) == []
    assert schema_errors(validator, {"resourceType": ""})


def test_invalid_schema_rejected():
    with pytest.raises(jsonschema.SchemaError):
        compile_schema({"type": "not-a-type"})
