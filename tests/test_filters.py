from datetime import date, datetime

import pytest
from pydantic import ValidationError

from conftest import make_ad, make_order
from subtrack.analyzer.filters import filter_collections
from subtrack.models.canonical_models import Platform, PlatformCollections
from subtrack.models.report_models import DateRange, FilterRequest, PlatformSelection

JAN_5 = DateRange(start=date(2024, 1, 5), end=date(2024, 1, 5))


@pytest.fixture
def collections():
    return PlatformCollections(
        shopee=[
            make_order("S1", ["alpha"], order_time=datetime(2024, 1, 5, 0, 0), channel="Instagram"),
            make_order("S2", ["beta", "alpha"], order_time=datetime(2024, 1, 5, 23, 59, 59), channel="Facebook"),
            make_order("S3", ["gamma"], order_time=datetime(2024, 1, 6, 0, 0), channel="Instagram"),
            make_order("S4", ["beta"], order_time=None, channel="Instagram"),
        ],
        lazada=[
            make_order("L1", ["alpha"], platform=Platform.LAZADA, validity="valid"),
            make_order("L2", ["beta"], platform=Platform.LAZADA, order_time=None, validity="invalid"),
        ],
        facebook=[
            make_ad("Alpha launch", spend=10),
            make_ad("Gamma push", spend=5, date=datetime(2024, 1, 7)),
            make_ad("Undated", spend=1, date=None),
        ],
    )


def _ids(records):
    return [getattr(r, "order_id", None) or r.campaign_name for r in records]


def test_empty_request_filters_nothing(collections):
    assert filter_collections(collections, FilterRequest()) == collections


def test_date_range_uses_inclusive_day_bounds(collections):
    result = filter_collections(collections, FilterRequest(date_range=JAN_5))

    assert _ids(result.shopee) == ["S1", "S2", "S4"]
    assert _ids(result.facebook) == ["Alpha launch"]


def test_undated_records_shopee_kept_others_dropped(collections):
    result = filter_collections(collections, FilterRequest(date_range=JAN_5))

    assert "S4" in _ids(result.shopee)
    assert _ids(result.lazada) == ["L1"]
    assert "Undated" not in _ids(result.facebook)


def test_sub_id_filter_matches_any_slot(collections):
    result = filter_collections(collections, FilterRequest(sub_ids={"alpha"}))

    assert _ids(result.shopee) == ["S1", "S2"]
    assert _ids(result.lazada) == ["L1"]
    assert _ids(result.facebook) == ["Alpha launch"]


@pytest.mark.parametrize("selection", [set(), {"all"}, {"all", "alpha"}])
def test_empty_or_all_selection_does_not_filter(collections, selection):
    result = filter_collections(collections, FilterRequest(sub_ids=selection, channels=selection))
    assert result == collections


def test_channel_filter_only_touches_shopee(collections):
    result = filter_collections(collections, FilterRequest(channels={"Facebook"}))

    assert _ids(result.shopee) == ["S2"]
    assert result.lazada == collections.lazada
    assert result.facebook == collections.facebook


def test_platform_selection_empties_other_marketplace(collections):
    shopee_only = filter_collections(collections, FilterRequest(platform=PlatformSelection.SHOPEE))
    lazada_only = filter_collections(collections, FilterRequest(platform=PlatformSelection.LAZADA))

    assert shopee_only.lazada == [] and len(shopee_only.shopee) == 4
    assert lazada_only.shopee == [] and len(lazada_only.lazada) == 2
    assert shopee_only.facebook == collections.facebook


def test_validity_filter_only_touches_lazada(collections):
    result = filter_collections(collections, FilterRequest(validity="valid"))

    assert _ids(result.lazada) == ["L1"]
    assert result.shopee == collections.shopee


def test_filters_compose_and_do_not_mutate(collections):
    before = collections.model_copy(deep=True)
    result = filter_collections(
        collections,
        FilterRequest(date_range=JAN_5, sub_ids={"beta"}, channels={"Instagram"}),
    )

    assert _ids(result.shopee) == ["S4"]
    assert _ids(result.lazada) == []
    assert collections == before


def test_date_range_start_after_end_rejected():
    with pytest.raises(ValidationError):
        DateRange(start=date(2024, 1, 6), end=date(2024, 1, 5))


@pytest.mark.parametrize("status", ["ยกเลิก", "ถูกยกเลิก", "cancel", " Canceled ", "CANCELLED"])
def test_cancelled_shopee_orders_always_dropped(collections, status):
    collections = collections.replace(
        Platform.SHOPEE, [*collections.shopee, make_order("S9", ["alpha"], status=status)]
    )

    result = filter_collections(collections, FilterRequest())

    assert "S9" not in _ids(result.shopee)
    assert _ids(result.shopee) == ["S1", "S2", "S3", "S4"]


def test_cancelled_status_on_lazada_is_left_to_validity(collections):
    collections = collections.replace(
        Platform.LAZADA, [make_order("L9", platform=Platform.LAZADA, status="cancelled")]
    )

    assert _ids(filter_collections(collections, FilterRequest()).lazada) == ["L9"]
