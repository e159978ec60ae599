from datetime import date, datetime

import pytest

from conftest import make_ad, make_order
from subtrack.analyzer.attribution import NO_SUB_ID
from subtrack.analyzer.filters import filter_collections
from subtrack.analyzer.metrics_engine import UNKNOWN_DAY, compute_metrics
from subtrack.core.formatting import format_currency, format_percentage, format_roi
from subtrack.models.canonical_models import Platform, PlatformCollections
from subtrack.models.report_models import DateRange, FilterRequest


@pytest.fixture
def mixed():
    return PlatformCollections(
        shopee=[
            make_order("S1", ["alpha"], commission=30, amount=300, category="Home", product="Lamp"),
            make_order("S1", ["alpha"], commission=20, amount=200, category="Home", product="Bulb"),
            make_order("S2", ["alpha", "alpha", "beta"], commission=10, order_time=datetime(2024, 1, 6)),
            make_order("S3", ["beta"], commission=5, order_time=None, category=" "),
        ],
        lazada=[
            make_order("L1", ["gamma"], commission=8, amount=80, platform=Platform.LAZADA, category="Home"),
            make_order("L1", ["gamma"], commission=2, amount=20, platform=Platform.LAZADA),
        ],
        facebook=[
            make_ad("alpha promo", spend=40, clicks=4, impressions=400, reach=300),
            make_ad("gamma promo", spend=12, date=datetime(2024, 1, 6)),
            make_ad("orphan", spend=7, date=None),
        ],
    )


def test_end_to_end_single_order(scenario):
    result = compute_metrics(scenario)

    sub1 = result.per_sub_id["sub1"]
    assert sub1.total_commission == 100
    assert sub1.ad_spend == 40
    assert sub1.total_profit == 60
    assert sub1.overall_roi == 150.0
    assert sub1.unique_orders == 1
    assert sub1.cost_per_order == 40


def test_shopee_order_lines_count_once(mixed):
    alpha = compute_metrics(mixed).per_sub_id["alpha"]

    assert alpha.orders_shopee == 2  # S1 (two lines) + S2
    assert alpha.commission_shopee == 60  # S2 counted once despite a repeated slot


def test_lazada_counts_rows_per_sub_id_but_unique_in_totals(mixed):
    result = compute_metrics(mixed)

    assert result.per_sub_id["gamma"].orders_lazada == 2
    assert result.totals.orders_lazada == 1
    assert result.per_platform["lazada"].orders == 1


def test_row_commission_goes_to_every_distinct_sub_id(mixed):
    result = compute_metrics(mixed)

    assert result.per_sub_id["beta"].total_commission == 15
    assert result.totals.total_commission == 75


def test_no_sub_id_bucket_is_excluded_but_totalled(mixed):
    result = compute_metrics(mixed)

    assert NO_SUB_ID not in result.per_sub_id
    assert result.totals.total_ad_spend == 59
    assert result.totals.attributed_ad_spend == 52
    assert result.totals.unattributed_ad_spend == 7


def test_orphan_spend_without_orders_yields_no_rows():
    collections = PlatformCollections(facebook=[make_ad("nothing matches", spend=9)])

    result = compute_metrics(collections)

    assert result.per_sub_id == {}
    assert result.totals.total_ad_spend == 9
    assert result.per_day["2024-01-05"].ad_spend == 9


def test_zero_spend_roi_is_zero(mixed):
    beta = compute_metrics(mixed).per_sub_id["beta"]
    assert beta.ad_spend == 0
    assert beta.overall_roi == 0
    assert beta.cost_per_order == 0


def test_sub_id_ranking_by_spend_then_commission(mixed):
    assert list(compute_metrics(mixed).per_sub_id) == ["alpha", "gamma", "beta"]


def test_per_day_keys_and_unknown_bucket(mixed):
    per_day = compute_metrics(mixed).per_day

    assert list(per_day) == ["2024-01-05", "2024-01-06", UNKNOWN_DAY]
    assert per_day[UNKNOWN_DAY].total_commission == 5
    assert per_day[UNKNOWN_DAY].ad_spend == 7
    assert per_day["2024-01-05"].orders_shopee == 1


@pytest.mark.parametrize(
    "request_",
    [
        FilterRequest(),
        FilterRequest(date_range=DateRange(start=date(2024, 1, 5), end=date(2024, 1, 5))),
        FilterRequest(sub_ids={"alpha"}),
        FilterRequest(platform="lazada"),
    ],
)
def test_per_day_sums_match_totals(mixed, request_):
    result = compute_metrics(filter_collections(mixed, request_))

    days = result.per_day.values()
    assert sum(d.total_commission for d in days) == pytest.approx(result.totals.total_commission)
    assert sum(d.ad_spend for d in days) == pytest.approx(result.totals.total_ad_spend)


def test_label_buckets_keyed_by_label_and_platform(mixed):
    result = compute_metrics(mixed)

    categories = {(c.label, c.platform): c for c in result.per_category}
    assert set(categories) == {("Home", "shopee"), ("Home", "lazada")}
    assert categories[("Home", "shopee")].total_orders == 1
    assert categories[("Home", "shopee")].total_commission == 50
    assert categories[("Home", "lazada")].amount == 80
    assert {p.label for p in result.per_product} == {"Lamp", "Bulb"}


def test_per_platform_rows(mixed):
    per_platform = compute_metrics(mixed).per_platform

    assert per_platform["shopee"].ad_spend == 40
    assert per_platform["lazada"].ad_spend == 12
    assert per_platform["facebook"].ad_spend == 59
    assert per_platform["facebook"].commission == 75
    assert per_platform["facebook"].clicks == 4
    assert per_platform["shopee"].orders == 3


def test_aggregation_is_idempotent(mixed):
    first = compute_metrics(mixed)
    second = compute_metrics(mixed)
    assert first.model_dump() == second.model_dump()


def test_formatting_helpers():
    assert format_currency(12345.678) == "12,345.68"
    assert format_percentage(150.0) == "150.0%"
    assert format_roi(-12.345, 10) == "-12.3%"
    assert format_roi(0.0, 0) == "-"


def test_real_sub_id_named_no_sub_id_is_reported():
    collections = PlatformCollections(
        shopee=[make_order("O1", [NO_SUB_ID], commission=10)],
        facebook=[make_ad("orphan", spend=5)],
    )

    result = compute_metrics(collections)

    assert result.per_sub_id[NO_SUB_ID].total_commission == 10
    assert result.per_sub_id[NO_SUB_ID].ad_spend == 0
    assert result.totals.unattributed_ad_spend == 5


def test_cancelled_shopee_orders_do_not_count():
    collections = PlatformCollections(
        shopee=[
            make_order("S1", ["a"], commission=100, status=" CANCELLED "),
            make_order("S2", ["a"], commission=50, status="สำเร็จแล้ว"),
        ],
    )

    result = compute_metrics(filter_collections(collections, FilterRequest()))

    assert result.totals.total_commission == 50
    assert result.totals.orders_shopee == 1
    assert result.per_sub_id["a"].orders_shopee == 1


@pytest.fixture
def lazada_mix():
    return PlatformCollections(
        shopee=[make_order("S1", commission=5), make_order("S2", commission=5)],
        lazada=[
            make_order("L1", platform=Platform.LAZADA, status="Delivered", amount=60),
            make_order("L2", platform=Platform.LAZADA, status="pending", commission=4, amount=20),
            make_order("L3", platform=Platform.LAZADA, status="pending"),
            make_order("L3", platform=Platform.LAZADA, status="shipped"),
        ],
        facebook=[make_ad("x", spend=30, cpc=2.0), make_ad("y", spend=10, cpc=4.0)],
    )


def test_lazada_validity_and_cost_figures(lazada_mix):
    totals = compute_metrics(lazada_mix).totals

    assert totals.orders_lazada == 3
    assert totals.valid_orders_lazada == 2  # L3 status comes from its first row
    assert totals.invalid_orders_lazada == 1
    assert totals.cost_per_order_shopee == 20
    assert totals.cost_per_order_lazada == 20
    assert totals.amount_per_cost_lazada == 2.0
    assert totals.avg_cpc == 3.0


def test_per_platform_cost_and_validity_rows(lazada_mix):
    per_platform = compute_metrics(lazada_mix).per_platform

    assert per_platform["lazada"].valid_orders == 2
    assert per_platform["lazada"].invalid_orders == 1
    assert per_platform["shopee"].valid_orders == 2
    assert per_platform["facebook"].avg_cpc == 3.0
    assert per_platform["facebook"].cost_per_order == 8


def test_no_ads_means_zero_cost_figures():
    totals = compute_metrics(PlatformCollections(shopee=[make_order("S1", commission=5)])).totals

    assert totals.cost_per_order_shopee == 0
    assert totals.amount_per_cost_lazada == 0
    assert totals.avg_cpc == 0


def test_campaign_listing_per_marketplace_sub_id():
    collections = PlatformCollections(
        shopee=[
            make_order("S1", ["alpha"], commission=30),
            make_order("S1", ["alpha"], commission=20, order_time=datetime(2024, 1, 6)),
            make_order("S2", ["alpha", "beta"], commission=10),
            make_order("S3", commission=99),
        ],
        lazada=[
            make_order("L1", ["alpha"], commission=5, platform=Platform.LAZADA, order_time=datetime(2024, 1, 7)),
            make_order("L1", ["alpha"], commission=5, platform=Platform.LAZADA, order_time=None),
        ],
        facebook=[make_ad("alpha promo", spend=20)],
    )

    campaigns = compute_metrics(collections).campaigns

    assert [(c.platform, c.sub_id) for c in campaigns] == [
        ("shopee", "alpha"),
        ("lazada", "alpha"),
        ("shopee", "beta"),
    ]
    shopee_alpha, lazada_alpha, shopee_beta = campaigns
    assert shopee_alpha.name == "Shopee Campaign - alpha"
    assert shopee_alpha.orders == 2
    assert shopee_alpha.commission == 60
    assert shopee_alpha.ad_spend == 20
    assert shopee_alpha.roi == 200.0
    assert shopee_alpha.performance == "excellent"
    assert shopee_alpha.start_date == "2024-01-06"
    assert shopee_alpha.status == "active"
    assert lazada_alpha.name == "Lazada Campaign - alpha"
    assert lazada_alpha.orders == 1
    assert lazada_alpha.commission == 10
    assert lazada_alpha.performance == "poor"
    assert lazada_alpha.start_date == "2024-01-07"
    assert shopee_beta.ad_spend == 0
    assert shopee_beta.performance == "average"
