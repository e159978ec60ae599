"""SubTrack — Stored Artifact Model."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field

# ── Fixed artifact keys ──
MERGED_SHOPEE_ORDERS = "merged_shopee_orders"
MERGED_LAZADA_ORDERS = "merged_lazada_orders"
MERGED_FACEBOOK_ADS = "merged_facebook_ads"
AGGREGATES = "aggregates"
MERGE_REPORT = "merge_report"
CONFLICT_ANALYSIS = "conflict_analysis"

ARTIFACT_KEYS = (
    MERGED_SHOPEE_ORDERS,
    MERGED_LAZADA_ORDERS,
    MERGED_FACEBOOK_ADS,
    AGGREGATES,
    MERGE_REPORT,
    CONFLICT_ANALYSIS,
)


class StoredArtifact(SQLModel, table=True):
    """One derived artifact, replaced wholesale after each successful pass."""

    __tablename__ = "stored_artifacts"

    key: str = Field(primary_key=True, description="Fixed logical artifact key")
    payload_json: str = Field(description="Serialized artifact")
    generation: int = Field(default=0, description="Pass that produced it")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
