"""SubTrack — Canonical Record Models.

Every source row, whatever its column names or language, is normalized into
one of these two shapes. Records are frozen: once a row is normalized its
origin and values never change; merges build new collections instead.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Platform(str, Enum):
    """Source platform of a record."""

    SHOPEE = "shopee"
    LAZADA = "lazada"
    FACEBOOK = "facebook"


class Origin(str, Enum):
    """How a record reached the system."""

    FILE_IMPORT = "file_import"
    API_SYNC = "api_sync"


class OrderRecord(BaseModel):
    """One marketplace order line.

    ``order_id`` is only unique within a platform, and an order spanning
    several products appears once per line.
    """

    platform: Platform
    order_id: str
    sub_ids: List[str] = []
    channel: Optional[str] = None
    category: str = ""
    product: str = ""
    commission: float = 0.0
    amount: float = 0.0
    order_time: Optional[datetime] = None  # None = missing or unparseable
    status: str = ""
    validity: str = ""
    origin: Origin

    model_config = {"frozen": True}


class AdRecord(BaseModel):
    """One advertising performance row (creative level, one day)."""

    platform: Platform = Platform.FACEBOOK
    campaign_name: str = ""
    ad_set_name: str = ""
    ad_name: str = ""
    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    reach: int = 0
    ctr: float = 0.0
    cpm: float = 0.0
    cpc: float = 0.0
    date: Optional[datetime] = None  # None = missing or unparseable
    origin: Origin

    model_config = {"frozen": True}

    @property
    def name_blob(self) -> str:
        """Lower-cased campaign, ad set and ad names joined by spaces."""
        return f"{self.campaign_name} {self.ad_set_name} {self.ad_name}".lower()


class PlatformCollections(BaseModel):
    """The three canonical collections handled by every pipeline stage."""

    shopee: List[OrderRecord] = []
    lazada: List[OrderRecord] = []
    facebook: List[AdRecord] = []

    def for_platform(self, platform: Platform) -> list:
        return getattr(self, platform.value)

    def replace(self, platform: Platform, records: list) -> "PlatformCollections":
        """Return a copy with one platform's collection swapped out."""
        return self.model_copy(update={platform.value: list(records)})

    @property
    def orders(self) -> List[OrderRecord]:
        """Marketplace orders in scan order: Shopee first, then Lazada."""
        return [*self.shopee, *self.lazada]

    def counts(self) -> dict[str, int]:
        return {p.value: len(self.for_platform(p)) for p in Platform}


class SourceCollections(BaseModel):
    """Canonical collections kept apart by origin until reconciliation."""

    file_import: PlatformCollections = Field(default_factory=PlatformCollections)
    api_sync: PlatformCollections = Field(default_factory=PlatformCollections)

    def for_origin(self, origin: Origin) -> PlatformCollections:
        return getattr(self, origin.value)

    def replace(
        self, platform: Platform, origin: Origin, records: list
    ) -> "SourceCollections":
        """Return a copy with one platform/origin slice replaced wholesale."""
        updated = self.for_origin(origin).replace(platform, records)
        return self.model_copy(update={origin.value: updated})
