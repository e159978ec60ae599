"""SubTrack — Dataset State & Pipeline Coordinator.

The coordinator owns the only mutable state in the system: the current
origin-separated source collections, a generation counter and the
last-known-good result. Passes run on snapshots; a result is applied only
while its generation is still the newest, so a slow pass can never overwrite
the output of a newer one.

Passes are always unfiltered. Filtered views are computed on demand from the
last applied reconciliation and never change state or the store.
"""

import asyncio
import threading
from typing import Any, Optional, Tuple

from pydantic import BaseModel, Field

from subtrack.analyzer.pipeline import build_artifacts, process_reconciled
from subtrack.config import settings
from subtrack.core.errors import StructuralFailure
from subtrack.core.logging import get_logger
from subtrack.core.schema_registry import get_schema
from subtrack.ingest.normalizer import normalize_rows
from subtrack.models.canonical_models import Origin, Platform, SourceCollections
from subtrack.models.report_models import FilterRequest, PipelineResult, ReconciliationResult
from subtrack.reconcile.service import reconcile_sources

logger = get_logger("analyzer.state")


class DatasetState(BaseModel):
    """Caller-owned current dataset and its derived result."""

    sources: SourceCollections = Field(default_factory=SourceCollections)
    generation: int = 0
    applied_generation: int = 0
    last_result: Optional[PipelineResult] = None
    last_reconciled: Optional[ReconciliationResult] = None
    last_error: Optional[str] = None


class PipelineCoordinator:
    """Serializes state changes and applies pass results newest-wins.

    ``store`` is any object with ``put_many(artifacts, generation)``;
    without one, results are kept in memory only.
    """

    def __init__(self, state: Optional[DatasetState] = None, store: Any = None):
        self.state = state or DatasetState()
        self.store = store
        self._lock = threading.Lock()

    # ── Inputs ──

    def ingest(self, platform: Platform, rows: Any, origin: Origin) -> int:
        """Normalize a raw batch and replace that platform/origin slice.

        Raises StructuralFailure without touching the current dataset.
        """
        try:
            records = normalize_rows(rows, get_schema(platform), origin)
        except StructuralFailure as e:
            self._record_failure(e)
            raise
        with self._lock:
            self.state.sources = self.state.sources.replace(platform, origin, records)
        return len(records)

    def request_pass(self) -> Tuple[int, SourceCollections]:
        """Start a new generation and snapshot the sources it will process."""
        with self._lock:
            self.state.generation += 1
            return self.state.generation, self.state.sources

    # ── Passes ──

    def execute_snapshot(self, generation: int, sources: SourceCollections) -> Optional[PipelineResult]:
        """Run one pass over a snapshot. Returns None when failed or superseded."""
        try:
            reconciled = reconcile_sources(sources)
            result = process_reconciled(reconciled, FilterRequest(), generation)
        except StructuralFailure as e:
            self._record_failure(e, generation)
            return None

        with self._lock:
            if generation != self.state.generation:
                logger.info(
                    f"Discarding pass {generation}; generation {self.state.generation} is newer",
                    extra={"generation": generation},
                )
                return None
            if self.store is not None:
                self.store.put_many(build_artifacts(reconciled, result), generation)
            self.state.last_result = result
            self.state.last_reconciled = reconciled
            self.state.applied_generation = generation
            self.state.last_error = None
        return result

    def execute_pass(self) -> Optional[PipelineResult]:
        """Run a pass synchronously on the current sources."""
        generation, sources = self.request_pass()
        return self.execute_snapshot(generation, sources)

    async def run_deferred(self) -> Optional[PipelineResult]:
        """Yield to the event loop briefly, then run the pass in a worker thread."""
        generation, sources = self.request_pass()
        await asyncio.sleep(settings.process_deferral_ms / 1000)
        return await asyncio.to_thread(self.execute_snapshot, generation, sources)

    # ── Views ──

    def view(self, request: FilterRequest) -> Optional[PipelineResult]:
        """Filter and aggregate the last applied pass without applying anything.

        The generation counter, last result and store are left as they are.
        Returns None until a pass has been applied.
        """
        with self._lock:
            reconciled = self.state.last_reconciled
            generation = self.state.applied_generation
        if reconciled is None:
            return None
        return process_reconciled(reconciled, request, generation)

    # ── Errors ──

    def _record_failure(self, error: StructuralFailure, generation: Optional[int] = None) -> None:
        logger.error(
            f"Structural failure, keeping last result: {error}",
            extra={"platform": error.platform, "generation": generation},
        )
        with self._lock:
            self.state.last_error = str(error)
