"""SubTrack — Cross-Platform Conflict Detection.

Runs once all per-platform merges are done. Compares the marketplaces with
the advertising data and produces advisory findings only:
- Date coverage of a marketplace starting far from the ad data
- Account-level ROI far below break-even
- Days with spend but no commission, or a very poor daily ROI
"""

from collections import defaultdict
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from subtrack.config import settings
from subtrack.core.logging import get_logger
from subtrack.models.canonical_models import AdRecord, OrderRecord
from subtrack.models.report_models import (
    ConflictKind,
    CrossPlatformAnalysis,
    CrossPlatformConflict,
    Severity,
)

logger = get_logger("reconcile.conflicts")

ALIGN_DATES_TIP = "Consider aligning date ranges across platforms for accurate comparison"
REVIEW_SPEND_TIP = "Review campaign performance and consider optimizing ad spend allocation"
IDLE_SPEND_TIP = "Check days where ads ran without any marketplace commission"


def _earliest(values: Iterable[Optional[datetime]]) -> Optional[datetime]:
    known = [v for v in values if v is not None]
    return min(known) if known else None


def _roi(commission: float, spend: float) -> float:
    return (commission - spend) / spend * 100 if spend > 0 else 0.0


def detect_cross_platform_conflicts(
    shopee: Sequence[OrderRecord],
    lazada: Sequence[OrderRecord],
    facebook: Sequence[AdRecord],
) -> CrossPlatformAnalysis:
    """Flag performance anomalies between marketplace and advertising data."""
    conflicts: List[CrossPlatformConflict] = []
    recommendations: List[str] = []

    def recommend(tip: str) -> None:
        if tip not in recommendations:
            recommendations.append(tip)

    # 1. Date coverage
    ads_start = _earliest(ad.date for ad in facebook)
    for label, orders in (("Shopee", shopee), ("Lazada", lazada)):
        orders_start = _earliest(o.order_time for o in orders)
        if ads_start is None or orders_start is None:
            continue
        days_diff = abs((orders_start - ads_start).total_seconds()) / 86400
        if days_diff > settings.date_mismatch_days:
            conflicts.append(
                CrossPlatformConflict(
                    type=ConflictKind.DATE_MISMATCH,
                    description=f"{label} and Facebook data have significant date range differences ({round(days_diff)} days)",
                    severity=Severity.MEDIUM,
                )
            )
            recommend(ALIGN_DATES_TIP)

    # 2. Account-level return
    total_spend = sum(ad.spend for ad in facebook)
    total_commission = sum(o.commission for o in shopee) + sum(o.commission for o in lazada)
    if total_spend > 0 and total_commission > 0:
        roi = _roi(total_commission, total_spend)
        if roi < settings.low_roi_threshold:
            conflicts.append(
                CrossPlatformConflict(
                    type=ConflictKind.PERFORMANCE_ANOMALY,
                    description=f"Very low ROI detected ({roi:.1f}%) - spend significantly exceeds commission",
                    severity=Severity.HIGH,
                )
            )
            recommend(REVIEW_SPEND_TIP)

    # 3. Daily comparison
    daily_spend: dict[str, float] = defaultdict(float)
    daily_commission: dict[str, float] = defaultdict(float)
    for ad in facebook:
        if ad.date is not None:
            daily_spend[ad.date.date().isoformat()] += ad.spend
    for o in [*shopee, *lazada]:
        if o.order_time is not None:
            daily_commission[o.order_time.date().isoformat()] += o.commission

    idle_days = sorted(
        d for d, spend in daily_spend.items() if spend > 0 and daily_commission.get(d, 0) == 0
    )
    weak_days = sorted(
        d
        for d, spend in daily_spend.items()
        if spend > 0
        and daily_commission.get(d, 0) > 0
        and _roi(daily_commission[d], spend) < settings.low_roi_threshold
    )
    if idle_days:
        conflicts.append(
            CrossPlatformConflict(
                type=ConflictKind.PERFORMANCE_ANOMALY,
                description=f"Ad spend with no attributable commission on {len(idle_days)} day(s)",
                severity=Severity.MEDIUM,
                affected_days=idle_days,
            )
        )
        recommend(IDLE_SPEND_TIP)
    if weak_days:
        conflicts.append(
            CrossPlatformConflict(
                type=ConflictKind.PERFORMANCE_ANOMALY,
                description=f"Daily ROI below {settings.low_roi_threshold:.0f}% on {len(weak_days)} day(s)",
                severity=Severity.LOW,
                affected_days=weak_days,
            )
        )
        recommend(REVIEW_SPEND_TIP)

    logger.info(
        f"Cross-platform check: {len(conflicts)} findings, {len(recommendations)} recommendations"
    )
    return CrossPlatformAnalysis(conflicts=conflicts, recommendations=recommendations)
