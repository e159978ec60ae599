"""SubTrack — Merge Report."""

from typing import Dict, List

from subtrack.models.report_models import MergeReport, MergeReportDetail, MergeResult


def _status(result: MergeResult) -> str:
    stats = result.statistics
    if stats.total_new > 0 and len(result.warnings) >= stats.total_new:
        return "error"
    if stats.duplicates_found > 0:
        return "warning"
    return "success"


def generate_merge_report(results: Dict[str, MergeResult]) -> MergeReport:
    """Summarize per-platform merge results for direct display."""
    details: List[MergeReportDetail] = [
        MergeReportDetail(
            platform=platform.capitalize(),
            original_count=r.statistics.total_original,
            new_count=r.statistics.total_new,
            merged_count=r.statistics.total_merged,
            duplicates_found=r.statistics.duplicates_found,
            conflicts_resolved=r.statistics.conflicts_resolved,
            status=_status(r),
        )
        for platform, r in results.items()
    ]

    total_duplicates = sum(d.duplicates_found for d in details)
    total_conflicts = sum(d.conflicts_resolved for d in details)

    if total_duplicates > 0:
        summary = (
            f"Merged data successfully with {total_duplicates} duplicates found "
            f"and {total_conflicts} conflicts resolved"
        )
    else:
        summary = "Data merged successfully with no conflicts"

    recommendations: List[str] = []
    if total_duplicates > 0:
        recommendations.append(
            "Review merged data for accuracy, especially where conflicts were resolved"
        )
    if total_conflicts > 0:
        recommendations.append(
            "Consider adjusting conflict resolution strategy if results are not as expected"
        )
    if any(d.status == "error" for d in details):
        recommendations.append("Re-run the API sync; no synced records could be matched by key")

    return MergeReport(summary=summary, details=details, recommendations=recommendations)
