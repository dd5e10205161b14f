"""
FHIR resource envelope schema and the resource-type constants the
analyzers dispatch on.

Only the envelope is checked here: every NDJSON line must be a JSON object
carrying a non-empty string ``resourceType``. Field-level content is left
to the analyzers, which tolerate missing or malformed values.
"""

FHIR_RESOURCE_ENVELOPE_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "FHIR resource envelope",
    "description": "Minimal structure shared by every FHIR R4 resource.",
    "type": "object",
    "required": ["resourceType"],
    "properties": {
        "resourceType": {
            "type": "string",
            "minLength": 1,
            "description": "Resource discriminator, e.g. 'Patient'.",
        },
    },
}


PATIENT = "Patient"
ENCOUNTER = "Encounter"

SUPPORTED_RESOURCE_TYPES: tuple[str, ...] = (PATIENT, ENCOUNTER)

# US Core extension URLs for race and ethnicity
US_CORE_RACE_URL = "http://hl7.org/fhir/us/core/StructureDefinition/us-core-race"
US_CORE_ETHNICITY_URL = "http://hl7.org/fhir/us/core/StructureDefinition/us-core-ethnicity"


def is_supported_resource_type(resource_type: str) -> bool:
    return resource_type in SUPPORTED_RESOURCE_TYPES
