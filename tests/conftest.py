import os

# Must be set before any subtrack module reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["PROCESS_DEFERRAL_MS"] = "0"

from datetime import datetime

import pytest

from subtrack.models.canonical_models import AdRecord, OrderRecord, Origin, Platform, PlatformCollections


def make_order(
    order_id,
    sub_ids=(),
    commission=0.0,
    order_time=datetime(2024, 1, 5, 10, 0),
    platform=Platform.SHOPEE,
    origin=Origin.FILE_IMPORT,
    **kwargs,
):
    return OrderRecord(
        platform=platform,
        order_id=order_id,
        sub_ids=list(sub_ids),
        commission=commission,
        order_time=order_time,
        origin=origin,
        **kwargs,
    )


def make_ad(
    campaign_name="",
    spend=0.0,
    date=datetime(2024, 1, 5),
    origin=Origin.FILE_IMPORT,
    **kwargs,
):
    return AdRecord(
        campaign_name=campaign_name,
        spend=spend,
        date=date,
        origin=origin,
        **kwargs,
    )


@pytest.fixture
def scenario():
    """One Shopee order for sub1 and one ad mentioning it, same day."""
    return PlatformCollections(
        shopee=[make_order("O1", ["sub1"], commission=100)],
        facebook=[make_ad("sub1 campaign", spend=40)],
    )
