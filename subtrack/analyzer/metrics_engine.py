"""SubTrack — Metrics Aggregator.

Computes every metric slice from one set of filtered, reconciled collections:
per Sub ID, per platform, per day, per category, per product, a campaign
listing and totals.

Counting rules:
- Shopee orders are counted by unique order id; one order may span several
  product lines, each carrying its own commission.
- Lazada orders are counted per row inside Sub ID, day and label buckets.
  Totals and campaign rows count unique order ids on both platforms.
- Commission and amount always sum per row.

Values keep full float precision; see subtrack.core.formatting for display.
"""

from collections import defaultdict
from typing import Dict, List, Optional, Set, Tuple

from subtrack.analyzer.attribution import attribute
from subtrack.core.logging import get_logger
from subtrack.models.canonical_models import AdRecord, OrderRecord, Platform, PlatformCollections
from subtrack.models.report_models import (
    AggregateResult,
    Attribution,
    CampaignSummary,
    DailyMetrics,
    LabelMetrics,
    PlatformMetrics,
    SubIdMetrics,
    Totals,
)

logger = get_logger("analyzer.metrics")

UNKNOWN_DAY = "Unknown"


def _roi(profit: float, spend: float) -> float:
    return profit / spend * 100 if spend > 0 else 0.0


def _per_order(spend: float, orders: int) -> float:
    return spend / orders if orders > 0 else 0.0


def _day_of(value) -> str:
    return value.date().isoformat() if value is not None else UNKNOWN_DAY


class _Bucket:
    """Running sums for one slice; Shopee orders kept as an id set."""

    def __init__(self):
        self.commission_shopee = 0.0
        self.commission_lazada = 0.0
        self.amount_shopee = 0.0
        self.amount_lazada = 0.0
        self.shopee_ids: Set[str] = set()
        self.lazada_rows = 0
        self.ad_spend = 0.0

    def add(self, order: OrderRecord) -> None:
        if order.platform == Platform.SHOPEE:
            self.commission_shopee += order.commission
            self.amount_shopee += order.amount
            self.shopee_ids.add(order.order_id)
        else:
            self.commission_lazada += order.commission
            self.amount_lazada += order.amount
            self.lazada_rows += 1

    @property
    def commission(self) -> float:
        return self.commission_shopee + self.commission_lazada

    @property
    def orders(self) -> int:
        return len(self.shopee_ids) + self.lazada_rows


# ── Per Sub ID ──


def _sub_id_metrics(orders: List[OrderRecord], attribution: Attribution) -> Dict[str, SubIdMetrics]:
    buckets: Dict[str, _Bucket] = defaultdict(_Bucket)
    for order in orders:
        # A Sub ID repeated across slots still counts the row once
        for sub_id in dict.fromkeys(s for s in order.sub_ids if s.strip()):
            buckets[sub_id].add(order)
    for sub_id, spent in attribution.by_sub_id.items():
        buckets[sub_id].ad_spend += spent.spend

    result: Dict[str, SubIdMetrics] = {}
    for sub_id, b in buckets.items():
        if b.orders == 0 and b.commission == 0:
            continue
        profit = b.commission - b.ad_spend
        result[sub_id] = SubIdMetrics(
            sub_id=sub_id,
            commission_shopee=b.commission_shopee,
            commission_lazada=b.commission_lazada,
            total_commission=b.commission,
            ad_spend=b.ad_spend,
            total_profit=profit,
            overall_roi=_roi(profit, b.ad_spend),
            orders_shopee=len(b.shopee_ids),
            orders_lazada=b.lazada_rows,
            unique_orders=b.orders,
            cost_per_order=_per_order(b.ad_spend, b.orders),
            amount_lazada=b.amount_lazada,
        )

    ranked = sorted(result.values(), key=lambda m: (-m.ad_spend, -m.total_commission))
    return {m.sub_id: m for m in ranked}


# ── Per day ──


def _daily_metrics(collections: PlatformCollections) -> Dict[str, DailyMetrics]:
    buckets: Dict[str, _Bucket] = defaultdict(_Bucket)
    for order in collections.orders:
        buckets[_day_of(order.order_time)].add(order)
    for ad in collections.facebook:
        buckets[_day_of(ad.date)].ad_spend += ad.spend

    days = sorted(d for d in buckets if d != UNKNOWN_DAY)
    if UNKNOWN_DAY in buckets:
        days.append(UNKNOWN_DAY)

    result: Dict[str, DailyMetrics] = {}
    for day in days:
        b = buckets[day]
        profit = b.commission - b.ad_spend
        result[day] = DailyMetrics(
            date=day,
            orders_shopee=len(b.shopee_ids),
            orders_lazada=b.lazada_rows,
            total_orders=b.orders,
            commission_shopee=b.commission_shopee,
            commission_lazada=b.commission_lazada,
            total_commission=b.commission,
            ad_spend=b.ad_spend,
            total_profit=profit,
            overall_roi=_roi(profit, b.ad_spend),
        )
    return result


# ── Per category / product ──


def _label_metrics(orders: List[OrderRecord], attr: str) -> List[LabelMetrics]:
    buckets: Dict[Tuple[str, str], _Bucket] = defaultdict(_Bucket)
    for order in orders:
        label = getattr(order, attr).strip()
        if label:
            buckets[(label, order.platform.value)].add(order)

    rows = [
        LabelMetrics(
            label=label,
            platform=platform,
            total_commission=b.commission,
            total_orders=b.orders,
            amount=b.amount_shopee + b.amount_lazada,
        )
        for (label, platform), b in buckets.items()
    ]
    rows.sort(key=lambda r: (-r.total_commission, r.label, r.platform))
    return rows


# ── Per platform & totals ──

LAZADA_VALID_STATUSES = {"shipped", "delivered"}


def _unique_orders(orders: List[OrderRecord]) -> int:
    return len({o.order_id for o in orders})


def _lazada_validity(orders: List[OrderRecord]) -> Tuple[int, int]:
    """(valid, invalid) unique Lazada orders.

    An order is valid once shipped or delivered, or when its rows pay out
    anything at all. Status is taken from the first row of the order.
    """
    payout: Dict[str, float] = {}
    status: Dict[str, str] = {}
    for order in orders:
        payout[order.order_id] = payout.get(order.order_id, 0.0) + order.commission
        status.setdefault(order.order_id, order.status.strip().lower())
    valid = sum(1 for oid in payout if status[oid] in LAZADA_VALID_STATUSES or payout[oid] > 0)
    return valid, len(payout) - valid


def _avg_cpc(ads: List[AdRecord]) -> float:
    return sum(a.cpc for a in ads) / len(ads) if ads else 0.0


def _platform_metrics(
    collections: PlatformCollections,
    attribution: Attribution,
    kept: Dict[str, SubIdMetrics],
) -> Dict[str, PlatformMetrics]:
    shopee_sub_ids = {s for o in collections.shopee for s in o.sub_ids}
    spend_by_platform = {Platform.SHOPEE: 0.0, Platform.LAZADA: 0.0}
    for sub_id in kept:
        spent = attribution.by_sub_id.get(sub_id)
        if spent is None:
            continue
        home = Platform.SHOPEE if sub_id in shopee_sub_ids else Platform.LAZADA
        spend_by_platform[home] += spent.spend

    result: Dict[str, PlatformMetrics] = {}
    for platform in (Platform.SHOPEE, Platform.LAZADA):
        orders = collections.for_platform(platform)
        unique = _unique_orders(orders)
        if platform == Platform.LAZADA:
            valid, invalid = _lazada_validity(orders)
        else:
            valid, invalid = unique, 0
        commission = sum(o.commission for o in orders)
        spend = spend_by_platform[platform]
        result[platform.value] = PlatformMetrics(
            platform=platform.value,
            orders=unique,
            commission=commission,
            amount=sum(o.amount for o in orders),
            ad_spend=spend,
            total_profit=commission - spend,
            overall_roi=_roi(commission - spend, spend),
            cost_per_order=_per_order(spend, valid),
            valid_orders=valid,
            invalid_orders=invalid,
        )

    ads = collections.facebook
    spend = sum(a.spend for a in ads)
    commission = sum(o.commission for o in collections.orders)
    orders = _unique_orders(collections.shopee) + _unique_orders(collections.lazada)
    result[Platform.FACEBOOK.value] = PlatformMetrics(
        platform=Platform.FACEBOOK.value,
        orders=orders,
        commission=commission,
        ad_spend=spend,
        impressions=sum(a.impressions for a in ads),
        clicks=sum(a.clicks for a in ads),
        reach=sum(a.reach for a in ads),
        total_profit=commission - spend,
        overall_roi=_roi(commission - spend, spend),
        cost_per_order=_per_order(spend, orders),
        avg_cpc=_avg_cpc(ads),
    )
    return result


def _totals(collections: PlatformCollections, kept: Dict[str, SubIdMetrics]) -> Totals:
    ads = collections.facebook
    commission_shopee = sum(o.commission for o in collections.shopee)
    commission_lazada = sum(o.commission for o in collections.lazada)
    commission = commission_shopee + commission_lazada
    spend = sum(a.spend for a in ads)
    attributed = sum(m.ad_spend for m in kept.values())
    orders_shopee = _unique_orders(collections.shopee)
    orders_lazada = _unique_orders(collections.lazada)
    valid_lazada, invalid_lazada = _lazada_validity(collections.lazada)
    amount_lazada = sum(o.amount for o in collections.lazada)
    orders = orders_shopee + orders_lazada
    profit = commission - spend
    return Totals(
        total_commission=commission,
        commission_shopee=commission_shopee,
        commission_lazada=commission_lazada,
        total_ad_spend=spend,
        attributed_ad_spend=attributed,
        unattributed_ad_spend=spend - attributed,
        total_orders=orders,
        orders_shopee=orders_shopee,
        orders_lazada=orders_lazada,
        total_amount=sum(o.amount for o in collections.orders),
        total_profit=profit,
        overall_roi=_roi(profit, spend),
        cost_per_order=_per_order(spend, orders),
        total_clicks=sum(a.clicks for a in ads),
        total_impressions=sum(a.impressions for a in ads),
        total_reach=sum(a.reach for a in ads),
        valid_orders_lazada=valid_lazada,
        invalid_orders_lazada=invalid_lazada,
        cost_per_order_shopee=_per_order(spend, orders_shopee),
        cost_per_order_lazada=_per_order(spend, valid_lazada),
        amount_per_cost_lazada=amount_lazada / spend if spend > 0 else 0.0,
        avg_cpc=_avg_cpc(ads),
    )


# ── Campaign listing ──


def _performance(roi: float) -> str:
    if roi >= 100:
        return "excellent"
    if roi >= 50:
        return "good"
    if roi >= 0:
        return "average"
    return "poor"


def _campaigns(collections: PlatformCollections, attribution: Attribution) -> List[CampaignSummary]:
    """One row per (marketplace, Sub ID), highest commission first.

    Orders count unique order ids; start_date is the latest order day seen.
    """
    rows: List[CampaignSummary] = []
    for platform in (Platform.SHOPEE, Platform.LAZADA):
        order_ids: Dict[str, Set[str]] = defaultdict(set)
        commission: Dict[str, float] = defaultdict(float)
        latest: Dict[str, str] = {}
        for order in collections.for_platform(platform):
            for sub_id in dict.fromkeys(s for s in order.sub_ids if s.strip()):
                order_ids[sub_id].add(order.order_id)
                commission[sub_id] += order.commission
                day = _day_of(order.order_time)
                if day != UNKNOWN_DAY and day > latest.get(sub_id, ""):
                    latest[sub_id] = day

        for sub_id, ids in order_ids.items():
            spent = attribution.by_sub_id.get(sub_id)
            spend = spent.spend if spent is not None else 0.0
            roi = _roi(commission[sub_id] - spend, spend)
            rows.append(
                CampaignSummary(
                    name=f"{platform.value.capitalize()} Campaign - {sub_id}",
                    platform=platform.value,
                    sub_id=sub_id,
                    orders=len(ids),
                    commission=commission[sub_id],
                    ad_spend=spend,
                    roi=roi,
                    status="active" if ids else "paused",
                    start_date=latest.get(sub_id, UNKNOWN_DAY),
                    performance=_performance(roi),
                )
            )

    rows.sort(key=lambda c: (-c.commission, c.platform, c.sub_id))
    return rows


def compute_metrics(
    collections: PlatformCollections,
    attribution: Optional[Attribution] = None,
) -> AggregateResult:
    """Aggregate filtered collections into every metric slice.

    ``attribution`` is computed from the same collections when not supplied.
    Pure: the same input always yields identical output.
    """
    if attribution is None:
        attribution = attribute(collections.facebook, collections.orders)

    orders = collections.orders
    per_sub_id = _sub_id_metrics(orders, attribution)
    result = AggregateResult(
        per_sub_id=per_sub_id,
        per_platform=_platform_metrics(collections, attribution, per_sub_id),
        per_day=_daily_metrics(collections),
        per_category=_label_metrics(orders, "category"),
        per_product=_label_metrics(orders, "product"),
        campaigns=_campaigns(collections, attribution),
        totals=_totals(collections, per_sub_id),
    )
    logger.info(
        f"Computed metrics: {len(per_sub_id)} Sub IDs, {len(result.per_day)} days, "
        f"{len(result.per_category)} categories, {len(result.per_product)} products, "
        f"{len(result.campaigns)} campaigns",
        extra={"record_count": len(orders) + len(collections.facebook)},
    )
    return result
