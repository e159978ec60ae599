"""SubTrack — Platform Schema Registry.

Declares, per platform, which source columns feed each canonical field.
Each canonical field lists its accepted column aliases in priority order;
the first alias holding a non-blank value wins. Onboarding a new export
layout or language means adding aliases here, not changing the normalizer.
"""

from enum import Enum
from typing import Dict, Tuple

from subtrack.models.canonical_models import Platform


class RecordKind(str, Enum):
    """Which canonical record a schema produces."""

    ORDER = "order"
    AD = "ad"


class PlatformSchema:
    """Describes the column layout of one platform's rows."""

    def __init__(
        self,
        platform: Platform,
        kind: RecordKind,
        fields: Dict[str, Tuple[str, ...]],
        sub_id_columns: Tuple[str, ...] = (),
        required_fields: Tuple[str, ...] = (),
    ):
        self.platform = platform
        self.kind = kind
        self.fields = fields
        self.sub_id_columns = sub_id_columns
        self.required_fields = required_fields

    def aliases(self, field: str) -> Tuple[str, ...]:
        return self.fields.get(field, ())

    def __repr__(self) -> str:
        return f"<PlatformSchema {self.platform.value} ({self.kind.value})>"


# ─────────────────────────────────────────────
# MARKETPLACES
# ─────────────────────────────────────────────

SHOPEE_SCHEMA = PlatformSchema(
    platform=Platform.SHOPEE,
    kind=RecordKind.ORDER,
    fields={
        "order_id": ("เลขที่คำสั่งซื้อ", "รหัสการสั่งซื้อ", "Order ID", "order_id"),
        "channel": ("ช่องทาง", "Channel", "channel"),
        "category": ("L1 หมวดหมู่สากล", "Category L1", "Category", "category"),
        "product": ("ชื่อรายการสินค้า", "ชื่อสินค้า", "Item Name", "product"),
        "commission": (
            "คอมมิชชั่นสินค้าโดยรวม(฿)",
            "Item Total Commission",
            "Commission",
            "commission",
        ),
        "amount": ("มูลค่าซื้อ(฿)", "ยอดขายสินค้าโดยรวม(฿)", "Purchase Value", "amount"),
        "order_time": (
            "เวลาที่สั่งซื้อ",
            "วันที่สั่งซื้อ",
            "Order Time",
            "Order Date",
            "Date",
        ),
        "status": ("สถานะการสั่งซื้อ", "สถานะ", "Order Status", "status"),
    },
    sub_id_columns=("Sub_id1", "Sub_id2", "Sub_id3", "Sub_id4", "Sub_id5"),
    required_fields=("order_id",),
)

LAZADA_SCHEMA = PlatformSchema(
    platform=Platform.LAZADA,
    kind=RecordKind.ORDER,
    fields={
        "order_id": ("Check Out ID", "Order Number", "order_id"),
        "category": ("Category L1", "Category", "category"),
        "product": ("Item Name", "Product Name", "product"),
        "commission": ("Payout", "Commission", "commission"),
        "amount": ("Order Amount", "amount"),
        "order_time": ("Conversion Time", "Order Time", "order_time"),
        "status": ("Order Status", "status"),
        "validity": ("Validity", "validity"),
    },
    sub_id_columns=("Aff Sub ID", "Sub ID 1", "Sub ID 2", "Sub ID 3", "Sub ID 4", "Sub ID"),
    required_fields=("order_id",),
)

# ─────────────────────────────────────────────
# ADVERTISING
# ─────────────────────────────────────────────

FACEBOOK_SCHEMA = PlatformSchema(
    platform=Platform.FACEBOOK,
    kind=RecordKind.AD,
    fields={
        "campaign_name": ("Campaign name", "campaign_name"),
        "ad_set_name": ("Ad set name", "adset_name", "ad_set_name"),
        "ad_name": ("Ad name", "ad_name"),
        "spend": ("Amount spent (THB)", "Amount spent", "spend"),
        "impressions": ("Impressions", "impressions"),
        "clicks": ("Link clicks", "Clicks", "clicks"),
        "reach": ("Reach", "reach"),
        "ctr": ("CTR (link click-through rate)", "CTR", "ctr"),
        "cpm": ("CPM (cost per 1,000 impressions)", "CPM", "cpm"),
        "cpc": ("CPC (cost per link click)", "CPC", "cpc"),
        "date": ("Day", "Date", "date_start"),
    },
    required_fields=("spend",),
)


# ─────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────

SCHEMAS: Dict[Platform, PlatformSchema] = {
    Platform.SHOPEE: SHOPEE_SCHEMA,
    Platform.LAZADA: LAZADA_SCHEMA,
    Platform.FACEBOOK: FACEBOOK_SCHEMA,
}


def get_schema(platform: Platform) -> PlatformSchema:
    """Look up the schema for a platform."""
    return SCHEMAS[platform]
