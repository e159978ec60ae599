"""SubTrack — Processing Pipeline.

Runs the full data flow for one pass:
  reconcile sources → filter → attribute spend → aggregate → PipelineResult

Every stage is a pure function of its inputs; state and persistence belong to
the coordinator in subtrack.analyzer.state.
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from subtrack.analyzer.attribution import attribute
from subtrack.analyzer.filters import filter_collections
from subtrack.analyzer.metrics_engine import compute_metrics
from subtrack.config import settings
from subtrack.core.logging import get_logger
from subtrack.models.canonical_models import SourceCollections
from subtrack.models.report_models import FilterRequest, PipelineResult, ReconciliationResult
from subtrack.models.store_models import (
    AGGREGATES,
    CONFLICT_ANALYSIS,
    MERGE_REPORT,
    MERGED_FACEBOOK_ADS,
    MERGED_LAZADA_ORDERS,
    MERGED_SHOPEE_ORDERS,
)
from subtrack.reconcile.merger import strip_provenance
from subtrack.reconcile.service import reconcile_sources

logger = get_logger("analyzer.pipeline")


def process_reconciled(
    reconciled: ReconciliationResult,
    request: Optional[FilterRequest] = None,
    generation: int = 0,
) -> PipelineResult:
    """Filter, attribute and aggregate already-reconciled collections."""
    request = request or FilterRequest()
    started = time.perf_counter()

    filtered = filter_collections(reconciled.combined, request)
    attribution = attribute(filtered.facebook, filtered.orders)
    aggregates = compute_metrics(filtered, attribution)

    result = PipelineResult(
        schema_version=settings.report_schema_version,
        generation=generation,
        generated_at=datetime.now(timezone.utc).isoformat(),
        currency=settings.account_currency,
        filter=request,
        record_counts=filtered.counts(),
        attribution=attribution,
        aggregates=aggregates,
        merge_report=reconciled.merge_report,
        cross_platform=reconciled.cross_platform,
    )
    duration_ms = round((time.perf_counter() - started) * 1000, 1)
    logger.info(
        f"Pass {generation} complete: {aggregates.totals.total_orders} orders, "
        f"commission {aggregates.totals.total_commission:.2f}, "
        f"spend {aggregates.totals.total_ad_spend:.2f}",
        extra={"generation": generation, "duration_ms": duration_ms},
    )
    return result


def run_pipeline(
    sources: SourceCollections,
    request: Optional[FilterRequest] = None,
    generation: int = 0,
) -> PipelineResult:
    """Reconcile the origin-separated sources, then process them."""
    return process_reconciled(reconcile_sources(sources), request, generation)


def build_artifacts(reconciled: ReconciliationResult, result: PipelineResult) -> Dict[str, Any]:
    """JSON-ready payloads for every stored artifact key."""
    combined = reconciled.combined
    return {
        MERGED_SHOPEE_ORDERS: strip_provenance(combined.shopee),
        MERGED_LAZADA_ORDERS: strip_provenance(combined.lazada),
        MERGED_FACEBOOK_ADS: strip_provenance(combined.facebook),
        AGGREGATES: result.aggregates.model_dump(mode="json"),
        MERGE_REPORT: result.merge_report.model_dump(mode="json") if result.merge_report else None,
        CONFLICT_ANALYSIS: {
            "cross_platform": reconciled.cross_platform.model_dump(mode="json"),
            "merge_conflicts": {
                platform: [c.model_dump(mode="json") for c in r.conflicts]
                for platform, r in reconciled.merge_results.items()
            },
        },
    }
