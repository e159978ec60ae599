"""SubTrack — Filter Pipeline.

Applies a FilterRequest to the reconciled collections before attribution and
aggregation. Every filter is pure and keeps record order:
  cancelled → date range → sub ids → channels → validity → platform

Cancelled Shopee orders are always dropped, whatever the request.
"""

from datetime import datetime, time
from typing import Dict, List, Optional, Set

from subtrack.core.logging import get_logger
from subtrack.models.canonical_models import AdRecord, OrderRecord, Platform, PlatformCollections
from subtrack.models.report_models import DateRange, FilterRequest, PlatformSelection

logger = get_logger("analyzer.filters")

ALL = "all"

# Whether a record with an unparseable date survives an active date filter.
# Shopee exports routinely carry partial timestamps, so those orders are kept.
KEEP_UNDATED: Dict[Platform, bool] = {
    Platform.SHOPEE: True,
    Platform.LAZADA: False,
    Platform.FACEBOOK: False,
}


# Shopee order statuses (Thai and English) that mean the order was cancelled.
CANCELLED_STATUSES = {"ยกเลิก", "ถูกยกเลิก", "cancel", "canceled", "cancelled"}


def _active(selection: Optional[Set[str]]) -> bool:
    """Empty selections and selections containing 'all' do not filter."""
    return bool(selection) and ALL not in selection


# ── Cancelled orders ──


def is_cancelled(order: OrderRecord) -> bool:
    return order.status.strip().lower() in CANCELLED_STATUSES


def filter_cancelled(collections: PlatformCollections) -> PlatformCollections:
    """Drop cancelled Shopee orders. Lazada carries validity instead."""
    return collections.replace(
        Platform.SHOPEE, [o for o in collections.shopee if not is_cancelled(o)]
    )


# ── Date range ──


def _in_range(value: Optional[datetime], platform: Platform, lower: datetime, upper: datetime) -> bool:
    if value is None:
        return KEEP_UNDATED[platform]
    return lower <= value <= upper


def filter_by_date(collections: PlatformCollections, date_range: Optional[DateRange]) -> PlatformCollections:
    if date_range is None:
        return collections
    lower = datetime.combine(date_range.start, time.min)
    upper = datetime.combine(date_range.end, time.max)
    return PlatformCollections(
        shopee=[o for o in collections.shopee if _in_range(o.order_time, Platform.SHOPEE, lower, upper)],
        lazada=[o for o in collections.lazada if _in_range(o.order_time, Platform.LAZADA, lower, upper)],
        facebook=[a for a in collections.facebook if _in_range(a.date, Platform.FACEBOOK, lower, upper)],
    )


# ── Sub IDs ──


def _order_has_sub_id(order: OrderRecord, selected: Set[str]) -> bool:
    return any(s in selected for s in order.sub_ids)


def _ad_mentions_sub_id(ad: AdRecord, needles: List[str]) -> bool:
    blob = ad.name_blob
    return any(n in blob for n in needles)


def filter_by_sub_ids(collections: PlatformCollections, sub_ids: Optional[Set[str]]) -> PlatformCollections:
    """Orders pass if any Sub ID slot is selected; ads if their names mention one."""
    if not _active(sub_ids):
        return collections
    needles = [s.lower() for s in sorted(sub_ids) if s.strip()]
    return PlatformCollections(
        shopee=[o for o in collections.shopee if _order_has_sub_id(o, sub_ids)],
        lazada=[o for o in collections.lazada if _order_has_sub_id(o, sub_ids)],
        facebook=[a for a in collections.facebook if _ad_mentions_sub_id(a, needles)],
    )


# ── Channels & validity ──


def filter_by_channels(collections: PlatformCollections, channels: Optional[Set[str]]) -> PlatformCollections:
    """Only Shopee exports carry a channel; everything else passes through."""
    if not _active(channels):
        return collections
    return collections.replace(
        Platform.SHOPEE, [o for o in collections.shopee if o.channel in channels]
    )


def filter_by_validity(collections: PlatformCollections, validity: Optional[str]) -> PlatformCollections:
    if not validity or validity == ALL:
        return collections
    return collections.replace(
        Platform.LAZADA, [o for o in collections.lazada if o.validity == validity]
    )


# ── Platform ──


def filter_by_platform(collections: PlatformCollections, platform: PlatformSelection) -> PlatformCollections:
    """Selecting one marketplace empties the other. Ads stay for attribution."""
    if platform == PlatformSelection.SHOPEE:
        return collections.replace(Platform.LAZADA, [])
    if platform == PlatformSelection.LAZADA:
        return collections.replace(Platform.SHOPEE, [])
    return collections


def filter_collections(collections: PlatformCollections, request: FilterRequest) -> PlatformCollections:
    """Apply every part of the request; never mutates the input collections."""
    before = collections.counts()
    result = filter_cancelled(collections)
    result = filter_by_date(result, request.date_range)
    result = filter_by_sub_ids(result, request.sub_ids)
    result = filter_by_channels(result, request.channels)
    result = filter_by_validity(result, request.validity)
    result = filter_by_platform(result, request.platform)

    after = result.counts()
    logger.info(
        "Filtered collections: "
        + ", ".join(f"{p} {before[p]}→{after[p]}" for p in before),
        extra={"record_count": sum(after.values())},
    )
    return result
