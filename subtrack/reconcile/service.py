"""SubTrack — Reconciliation Service.

Runs the full reconciliation flow over origin-separated collections:
  per-platform merge → cross-platform conflict pass → merge report
"""

import asyncio
from typing import Dict, List, Tuple

from subtrack.core.logging import get_logger
from subtrack.models.canonical_models import Platform, SourceCollections
from subtrack.models.report_models import MergeResult, ReconciliationResult
from subtrack.reconcile.conflicts import detect_cross_platform_conflicts
from subtrack.reconcile.merger import merge_records, source_statistics
from subtrack.reconcile.report import generate_merge_report

logger = get_logger("reconcile.service")


MergePair = Tuple[Platform, list, list]


def _merge_pairs(sources: SourceCollections) -> Tuple[List[MergePair], Dict[Platform, list]]:
    """Split platforms into those needing a merge and those taken as-is."""
    pairs: List[MergePair] = []
    passthrough: Dict[Platform, list] = {}
    for platform in Platform:
        file_records = sources.file_import.for_platform(platform)
        api_records = sources.api_sync.for_platform(platform)
        if file_records and api_records:
            pairs.append((platform, file_records, api_records))
        else:
            passthrough[platform] = list(file_records or api_records)
    return pairs, passthrough


def _assemble(
    sources: SourceCollections,
    passthrough: Dict[Platform, list],
    merge_results: Dict[str, MergeResult],
) -> ReconciliationResult:
    combined = sources.file_import.model_copy(
        update={p.value: records for p, records in passthrough.items()}
    )
    for name, result in merge_results.items():
        combined = combined.replace(Platform(name), result.merged_data)

    cross_platform = detect_cross_platform_conflicts(
        combined.shopee, combined.lazada, combined.facebook
    )
    return ReconciliationResult(
        combined=combined,
        merge_results=merge_results,
        source_stats={p.value: source_statistics(combined.for_platform(p)) for p in Platform},
        cross_platform=cross_platform,
        merge_report=generate_merge_report(merge_results) if merge_results else None,
    )


def reconcile_sources(sources: SourceCollections) -> ReconciliationResult:
    """Merge file-imported and API-synced collections platform by platform."""
    pairs, passthrough = _merge_pairs(sources)
    merge_results = {
        platform.value: merge_records(file_records, api_records, platform=platform.value)
        for platform, file_records, api_records in pairs
    }
    result = _assemble(sources, passthrough, merge_results)
    logger.info(
        f"Reconciled sources: {len(merge_results)} platform merges",
        extra={"record_count": sum(result.combined.counts().values())},
    )
    return result


async def reconcile_sources_async(sources: SourceCollections) -> ReconciliationResult:
    """Same as reconcile_sources, with the per-platform merges run concurrently."""
    pairs, passthrough = _merge_pairs(sources)
    results = await asyncio.gather(
        *[
            asyncio.to_thread(merge_records, file_records, api_records, platform.value)
            for platform, file_records, api_records in pairs
        ]
    )
    merge_results = {platform.value: r for (platform, _, _), r in zip(pairs, results)}
    return _assemble(sources, passthrough, merge_results)
