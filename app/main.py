"""
FastAPI application entrypoint.

Run locally:  uvicorn app.main:app --reload
"""

import logging

from fastapi import FastAPI

from app.api.routes import router
from app.config import settings
from app.models import stored_input  # noqa: F401  (registers tables on Base)
from app.models.database import Base, engine

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(levelname)s | %(name)s | %(message)s",
)

app = FastAPI(
    title="FHIR NDJSON Analytics API",
    description=(
        "Parses FHIR bulk-export NDJSON, reports per-line diagnostics and "
        "computes Patient demographics or Encounter length-of-stay and "
        "temporal analytics."
    ),
    version="1.0.0",
)

app.include_router(router, prefix="/api/v1")


@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
