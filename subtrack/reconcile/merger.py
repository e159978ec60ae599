"""SubTrack — Source Merger.

Reconciles a file-imported collection with an API-synced collection of the
same platform. Records are grouped by their duplicate-detection key (an
order's lines share one key); when a key exists on both sides the API-synced
group replaces the file group and every disagreement is recorded as a
resolved conflict.
"""

from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from subtrack.core.errors import StructuralFailure
from subtrack.core.logging import get_logger
from subtrack.models.canonical_models import AdRecord, OrderRecord, Origin
from subtrack.models.report_models import (
    ConflictKind,
    DataSourceStats,
    MergeConflict,
    MergeResult,
    MergeStatistics,
    Severity,
)

logger = get_logger("reconcile.merger")

# Relative difference thresholds for spend conflicts
HIGH_SPEND_DELTA = 0.5
MEDIUM_SPEND_DELTA = 0.1
HIGH_DATE_SHIFT_DAYS = 7

AD_PERFORMANCE_FIELDS = ("impressions", "clicks", "reach", "ctr", "cpm", "cpc")


# ── Keys ──


def order_key(record: OrderRecord) -> str:
    return record.order_id


def ad_key(record: AdRecord) -> str:
    day = record.date.date().isoformat() if record.date else ""
    return "|".join((record.campaign_name, record.ad_set_name, record.ad_name, day))


def _group(records: Iterable, key_fn: Callable) -> Dict[str, list]:
    groups: Dict[str, list] = defaultdict(list)
    for r in records:
        groups[key_fn(r)].append(r)
    return dict(groups)


def _collection_origin(records: Sequence) -> Optional[Origin]:
    origins = {r.origin for r in records}
    if len(origins) > 1:
        raise StructuralFailure("A merge input mixes file-import and api-sync records")
    return origins.pop() if origins else None


# ── Conflict detection ──


def _spend_severity(file_value: float, api_value: float) -> Severity:
    scale = max(abs(file_value), abs(api_value))
    delta = abs(api_value - file_value) / scale if scale else 0.0
    if delta >= HIGH_SPEND_DELTA:
        return Severity.HIGH
    if delta >= MEDIUM_SPEND_DELTA:
        return Severity.MEDIUM
    return Severity.LOW


def _earliest(values: Iterable[Optional[datetime]]) -> Optional[datetime]:
    known = [v for v in values if v is not None]
    return min(known) if known else None


def _date_severity(file_time: Optional[datetime], api_time: Optional[datetime]) -> Severity:
    if file_time is None or api_time is None:
        return Severity.MEDIUM
    shift = abs((api_time.date() - file_time.date()).days)
    if shift >= HIGH_DATE_SHIFT_DAYS:
        return Severity.HIGH
    return Severity.MEDIUM if shift >= 1 else Severity.LOW


def _order_conflicts(
    key: str, file_group: List[OrderRecord], api_group: List[OrderRecord]
) -> List[MergeConflict]:
    conflicts: List[MergeConflict] = []

    file_money = {
        "commission": sum(r.commission for r in file_group),
        "amount": sum(r.amount for r in file_group),
    }
    api_money = {
        "commission": sum(r.commission for r in api_group),
        "amount": sum(r.amount for r in api_group),
    }
    changed = [f for f in file_money if file_money[f] != api_money[f]]
    if changed:
        primary = "commission" if "commission" in changed else changed[0]
        conflicts.append(
            MergeConflict(
                record_key=key,
                kind=ConflictKind.SPEND_MISMATCH,
                fields=changed,
                file_values={f: file_money[f] for f in changed},
                api_values={f: api_money[f] for f in changed},
                severity=_spend_severity(file_money[primary], api_money[primary]),
            )
        )

    file_time = _earliest(r.order_time for r in file_group)
    api_time = _earliest(r.order_time for r in api_group)
    if file_time != api_time:
        conflicts.append(
            MergeConflict(
                record_key=key,
                kind=ConflictKind.DATE_MISMATCH,
                fields=["order_time"],
                file_values={"order_time": file_time},
                api_values={"order_time": api_time},
                severity=_date_severity(file_time, api_time),
            )
        )
    return conflicts


def _ad_conflicts(
    key: str, file_group: List[AdRecord], api_group: List[AdRecord]
) -> List[MergeConflict]:
    conflicts: List[MergeConflict] = []

    file_spend = sum(r.spend for r in file_group)
    api_spend = sum(r.spend for r in api_group)
    if file_spend != api_spend:
        conflicts.append(
            MergeConflict(
                record_key=key,
                kind=ConflictKind.SPEND_MISMATCH,
                fields=["spend"],
                file_values={"spend": file_spend},
                api_values={"spend": api_spend},
                severity=_spend_severity(file_spend, api_spend),
            )
        )

    file_perf = {f: sum(getattr(r, f) for r in file_group) for f in AD_PERFORMANCE_FIELDS}
    api_perf = {f: sum(getattr(r, f) for r in api_group) for f in AD_PERFORMANCE_FIELDS}
    changed = [f for f in AD_PERFORMANCE_FIELDS if file_perf[f] != api_perf[f]]
    if changed:
        conflicts.append(
            MergeConflict(
                record_key=key,
                kind=ConflictKind.PERFORMANCE_ANOMALY,
                fields=changed,
                file_values={f: file_perf[f] for f in changed},
                api_values={f: api_perf[f] for f in changed},
                severity=Severity.LOW,
            )
        )
    return conflicts


# ── Merge ──


def merge_records(existing: Sequence, incoming: Sequence, platform: str = "") -> MergeResult:
    """Merge two same-platform collections of opposite origin.

    The API-synced side wins every duplicate key; the inputs are left as-is.
    """
    existing, incoming = list(existing), list(incoming)
    existing_origin = _collection_origin(existing)
    incoming_origin = _collection_origin(incoming)
    if existing_origin is not None and existing_origin == incoming_origin:
        raise StructuralFailure(
            f"Cannot merge two {existing_origin.value} collections", platform=platform
        )

    sample = (existing or incoming or [None])[0]
    is_orders = isinstance(sample, OrderRecord)
    key_fn = order_key if is_orders else ad_key
    compare: Callable[[str, list, list], List[MergeConflict]] = (
        _order_conflicts if is_orders else _ad_conflicts
    )

    warnings: List[str] = []
    accepted: List[Any] = []
    for r in incoming:
        if not key_fn(r).strip("|"):
            warnings.append(f"{platform or 'record'} missing duplicate-detection key, skipped")
            continue
        accepted.append(r)

    existing_groups = _group(existing, key_fn)
    incoming_groups = _group(accepted, key_fn)

    merged: List[Any] = []
    conflicts: List[MergeConflict] = []
    duplicates_found = 0
    conflicting_keys = 0

    for key, group in existing_groups.items():
        other = incoming_groups.get(key)
        if other is None:
            merged.extend(group)
            continue

        duplicates_found += 1
        if incoming_origin == Origin.API_SYNC:
            file_group, api_group = group, other
        else:
            file_group, api_group = other, group

        found = compare(key, file_group, api_group)
        if found:
            conflicting_keys += 1
            conflicts.extend(found)
        merged.extend(api_group)

    for key, group in incoming_groups.items():
        if key not in existing_groups:
            merged.extend(group)

    statistics = MergeStatistics(
        total_original=len(existing),
        total_new=len(incoming),
        total_merged=len(merged),
        duplicates_found=duplicates_found,
        conflicts_found=conflicting_keys,
        conflicts_resolved=conflicting_keys,
    )
    logger.info(
        f"Merged {platform}: {len(existing)} existing + {len(incoming)} incoming → "
        f"{len(merged)} ({duplicates_found} duplicates, {conflicting_keys} conflicts resolved)",
        extra={"platform": platform, "record_count": len(merged)},
    )
    return MergeResult(
        platform=platform,
        merged_data=merged,
        statistics=statistics,
        conflicts=conflicts,
        warnings=warnings,
    )


# ── Provenance helpers ──


def strip_provenance(records: Iterable) -> List[dict]:
    """Plain, JSON-ready dicts without the origin tag."""
    return [r.model_dump(mode="json", exclude={"origin"}) for r in records]


def source_statistics(records: Sequence) -> DataSourceStats:
    stats = DataSourceStats(total=len(records))
    for r in records:
        if r.origin == Origin.FILE_IMPORT:
            stats.file_import += 1
        else:
            stats.api_sync += 1
    return stats


def filter_by_origin(records: Iterable, origin: Origin) -> list:
    return [r for r in records if r.origin == origin]
