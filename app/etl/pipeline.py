"""
NDJSON analysis pipeline: parse -> select -> analyze.

The parser keeps every valid resource regardless of type. The select step
is the type guard: it keeps only resources matching the detected type and
picks the analyzer, so mixed-type input never leaks into a typed analyzer.
"""

from __future__ import annotations

import logging
from typing import Any

from app.analytics.encounters import analyze_encounters
from app.analytics.generic import analyze_generic
from app.analytics.patients import analyze_patients
from app.config import settings
from app.etl.dag import DAG
from app.etl.ndjson import parse_ndjson
from app.schemas.fhir import ENCOUNTER, PATIENT, is_supported_resource_type

logger = logging.getLogger(__name__)

GENERIC = "generic"


# ---------------------------------------------------------------------------
# Pipeline steps (each receives the shared context and returns new keys)
# ---------------------------------------------------------------------------


def parse(context: dict[str, Any]) -> dict[str, Any]:
    """Parse step: raw NDJSON text into resources plus diagnostics."""
    result = parse_ndjson(context.get("ndjson", ""))
    return {"parse_result": result, "valid_count": result.valid_lines}


def select(context: dict[str, Any]) -> dict[str, Any]:
    """
    Select step: filter resources to the detected type and choose the
    analyzer. Unsupported types go to the generic field analysis with all
    resources.
    """
    result = context["parse_result"]
    resource_type = result.resource_type

    if is_supported_resource_type(resource_type):
        selected = [r for r in result.resources if r.get("resourceType") == resource_type]
        analyzer = resource_type
    else:
        selected = list(result.resources)
        analyzer = GENERIC

    logger.info(
        "Selected %d of %d resources for %s analysis",
        len(selected),
        len(result.resources),
        analyzer,
    )
    return {"selected_resources": selected, "analyzer": analyzer, "selected_count": len(selected)}


def analyze(context: dict[str, Any]) -> dict[str, Any]:
    """Analyze step: run the analyzer chosen by the select step."""
    resources = context["selected_resources"]
    analyzer = context["analyzer"]

    if analyzer == PATIENT:
        analytics = analyze_patients(resources, now=context.get("now"))
    elif analyzer == ENCOUNTER:
        analytics = analyze_encounters(resources)
    else:
        analytics = analyze_generic(
            resources, sample_size=context.get("sample_size", settings.GENERIC_SAMPLE_SIZE)
        )
    return {"analytics": analytics}


# ---------------------------------------------------------------------------
# Pipeline factory
# ---------------------------------------------------------------------------

def build_analysis_pipeline() -> DAG:
    """Construct the NDJSON analysis DAG."""
    dag = DAG("ndjson_analysis")
    dag.add_task("parse", parse)
    dag.add_task("select", select, depends_on=["parse"])
    dag.add_task("analyze", analyze, depends_on=["select"])
    return dag
