"""SubTrack — Attribution Engine.

Assigns advertising spend to Sub IDs by looking for a known Sub ID inside the
ad's campaign / ad set / ad names. Spend with no match lands in the NoSubID
bucket so totals always balance.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from subtrack.core.logging import get_logger
from subtrack.models.canonical_models import AdRecord, OrderRecord
from subtrack.models.report_models import NO_SUB_ID, AttributedSpend, Attribution

logger = get_logger("analyzer.attribution")


def known_sub_ids(orders: Sequence[OrderRecord]) -> List[str]:
    """Unique Sub IDs in the order they are first seen."""
    seen: Dict[str, None] = {}
    for order in orders:
        for sub_id in order.sub_ids:
            if sub_id.strip():
                seen.setdefault(sub_id, None)
    return list(seen)


class AttributionStrategy(ABC):
    """Decides which Sub ID, if any, an ad's spend belongs to."""

    @abstractmethod
    def match(self, name_blob: str, sub_ids: Sequence[str]) -> Optional[str]:
        """Return the matching Sub ID for a lower-cased name blob, or None.

        Args:
            name_blob: Campaign, ad set and ad names joined and lower-cased.
            sub_ids: Known Sub IDs in scan order.
        """
        ...


class FirstSubstringMatch(AttributionStrategy):
    """First known Sub ID (in scan order) contained in the names, case-insensitive."""

    def match(self, name_blob: str, sub_ids: Sequence[str]) -> Optional[str]:
        for sub_id in sub_ids:
            if sub_id.lower() in name_blob:
                return sub_id
        return None


def attribute(
    ad_records: Sequence[AdRecord],
    order_records: Sequence[OrderRecord],
    strategy: Optional[AttributionStrategy] = None,
) -> Attribution:
    """Sum each ad's spend and delivery into the bucket of its matched Sub ID.

    ``order_records`` must be in scan order (Shopee before Lazada); the result
    is deterministic for a given input order.
    """
    strategy = strategy or FirstSubstringMatch()
    candidates = known_sub_ids(order_records)

    result = Attribution(unattributed=AttributedSpend(sub_id=NO_SUB_ID))
    for ad in ad_records:
        sub_id = strategy.match(ad.name_blob, candidates)
        if sub_id is None:
            bucket = result.unattributed
        else:
            bucket = result.by_sub_id.get(sub_id)
            if bucket is None:
                bucket = result.by_sub_id[sub_id] = AttributedSpend(sub_id=sub_id)
        bucket.spend += ad.spend
        bucket.impressions += ad.impressions
        bucket.clicks += ad.clicks
        bucket.reach += ad.reach
        bucket.ad_count += 1

    unmatched = result.unattributed.ad_count
    logger.info(
        f"Attributed {len(ad_records)} ads to {len(result.by_sub_id)} Sub IDs"
        + (f", {unmatched} unmatched" if unmatched else ""),
        extra={"record_count": len(ad_records)},
    )
    return result
