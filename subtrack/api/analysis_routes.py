"""SubTrack — Analysis API Routes."""

import asyncio

from fastapi import APIRouter, Depends, HTTPException

from subtrack.analyzer.state import PipelineCoordinator
from subtrack.api.deps import get_coordinator
from subtrack.core.logging import get_logger
from subtrack.models.report_models import FilterRequest, PipelineResult

logger = get_logger("api.analysis")

router = APIRouter(tags=["Analysis"])


@router.post("/process", response_model=PipelineResult)
async def process(
    request: FilterRequest,
    coordinator: PipelineCoordinator = Depends(get_coordinator),
):
    """Filtered view of the last applied pass.

    Read-only: the stored aggregates and /aggregates/latest keep the unfiltered
    result, and the generation does not advance.
    """
    result = await asyncio.to_thread(coordinator.view, request)
    if result is None:
        raise HTTPException(status_code=404, detail="No processing pass has completed yet")
    logger.info(
        f"Served filtered view of pass {result.generation}",
        extra={"generation": result.generation, "record_count": sum(result.record_counts.values())},
    )
    return result


@router.get("/aggregates/latest", response_model=PipelineResult)
async def latest_aggregates(coordinator: PipelineCoordinator = Depends(get_coordinator)):
    """Return the last successfully applied result."""
    result = coordinator.state.last_result
    if result is None:
        raise HTTPException(status_code=404, detail="No processing pass has completed yet")
    return result


@router.get("/merge-report/latest")
async def latest_merge_report(coordinator: PipelineCoordinator = Depends(get_coordinator)):
    """Return the merge report and cross-platform findings of the last pass."""
    result = coordinator.state.last_result
    if result is None:
        raise HTTPException(status_code=404, detail="No processing pass has completed yet")
    return {
        "generation": result.generation,
        "merge_report": result.merge_report.model_dump() if result.merge_report else None,
        "cross_platform": result.cross_platform.model_dump(),
        "last_error": coordinator.state.last_error,
    }
