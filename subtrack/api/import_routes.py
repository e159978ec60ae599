"""SubTrack — Import & Sync API Routes."""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from subtrack.analyzer.state import PipelineCoordinator
from subtrack.api.deps import get_coordinator
from subtrack.core.errors import StructuralFailure
from subtrack.core.logging import get_logger
from subtrack.models.canonical_models import Origin, Platform
from subtrack.scheduler.jobs import schedule_processing, scheduler

logger = get_logger("api.imports")

router = APIRouter(tags=["Imports"])


# ── Request / Response Models ──


class ImportRequest(BaseModel):
    """Request body for POST /imports/{platform}."""

    origin: Origin = Origin.FILE_IMPORT
    """How the rows reached us: "file_import" (spreadsheet) or "api_sync"."""
    rows: List[Dict[str, Any]] = []
    """Raw rows keyed by source column name."""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "origin": "file_import",
                    "rows": [
                        {
                            "Order ID": "250101ABC",
                            "Sub_id1": "m02Rooftop0623",
                            "Item Total Commission": "125.50",
                            "Order Time": "2024-01-05 14:30:00",
                        }
                    ],
                }
            ]
        }
    }


class ImportResponse(BaseModel):
    status: str = "accepted"
    platform: Platform
    origin: Origin
    records: int
    generation: int
    processing: str
    """Either scheduled (queued on the scheduler) or completed (run inline)."""


# ── Endpoints ──


@router.post("/imports/{platform}", response_model=ImportResponse)
async def import_rows(
    platform: Platform,
    request: ImportRequest,
    coordinator: PipelineCoordinator = Depends(get_coordinator),
):
    """Replace one platform/origin slice and trigger a processing pass.

    The previous import for the same platform and origin is replaced
    wholesale; the other origin is kept for reconciliation.
    """
    try:
        count = coordinator.ingest(platform, request.rows, request.origin)
    except StructuralFailure as e:
        raise HTTPException(status_code=422, detail=str(e))

    if scheduler.running:
        schedule_processing(coordinator)
        processing = "scheduled"
    else:
        await coordinator.run_deferred()
        processing = "completed"

    logger.info(
        f"Imported {count} {platform.value} records from {request.origin.value}",
        extra={"platform": platform.value, "origin": request.origin.value, "record_count": count},
    )
    return ImportResponse(
        platform=platform,
        origin=request.origin,
        records=count,
        generation=coordinator.state.generation,
        processing=processing,
    )
