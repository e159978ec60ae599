"""SubTrack — Reconciliation & Aggregation Output Models."""

from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Union

from pydantic import BaseModel, Field, model_validator

from subtrack.models.canonical_models import AdRecord, OrderRecord, PlatformCollections


# ─────────────────────────────────────────────
# MERGE — per-platform reconciliation
# ─────────────────────────────────────────────


class ConflictKind(str, Enum):
    """What disagreed between two copies of the same record."""

    SPEND_MISMATCH = "spend_mismatch"
    DATE_MISMATCH = "date_mismatch"
    PERFORMANCE_ANOMALY = "performance_anomaly"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MergeConflict(BaseModel):
    """A resolved disagreement between the file and API copies of a record."""

    record_key: str
    kind: ConflictKind
    fields: List[str] = []
    file_values: Dict[str, Any] = {}
    api_values: Dict[str, Any] = {}
    severity: Severity = Severity.LOW
    resolution: str = "api_priority"


class MergeStatistics(BaseModel):
    total_original: int = 0
    total_new: int = 0
    total_merged: int = 0
    duplicates_found: int = 0
    conflicts_found: int = 0
    conflicts_resolved: int = 0


class MergeResult(BaseModel):
    """Outcome of merging one platform's file-import and api-sync records."""

    platform: str
    merged_data: List[Union[OrderRecord, AdRecord]] = []
    statistics: MergeStatistics = MergeStatistics()
    conflicts: List[MergeConflict] = []
    warnings: List[str] = []

    @property
    def duplicates_found(self) -> int:
        return self.statistics.duplicates_found

    @property
    def conflicts_resolved(self) -> int:
        return self.statistics.conflicts_resolved


class DataSourceStats(BaseModel):
    """How many records of a collection came from each origin."""

    file_import: int = 0
    api_sync: int = 0
    total: int = 0


class CrossPlatformConflict(BaseModel):
    """Advisory finding from comparing platforms after merging."""

    type: ConflictKind
    description: str
    severity: Severity = Severity.MEDIUM
    affected_days: List[str] = []


class CrossPlatformAnalysis(BaseModel):
    conflicts: List[CrossPlatformConflict] = []
    recommendations: List[str] = []


class MergeReportDetail(BaseModel):
    platform: str
    original_count: int
    new_count: int
    merged_count: int
    duplicates_found: int
    conflicts_resolved: int
    status: str  # "success" | "warning" | "error"


class MergeReport(BaseModel):
    """Human-readable summary of a reconciliation run."""

    summary: str = ""
    details: List[MergeReportDetail] = []
    recommendations: List[str] = []


class ReconciliationResult(BaseModel):
    """Combined, origin-reconciled collections plus provenance reporting."""

    combined: PlatformCollections = PlatformCollections()
    merge_results: Dict[str, MergeResult] = {}
    source_stats: Dict[str, DataSourceStats] = {}
    cross_platform: CrossPlatformAnalysis = CrossPlatformAnalysis()
    merge_report: Optional[MergeReport] = None


# ─────────────────────────────────────────────
# FILTERS
# ─────────────────────────────────────────────


class PlatformSelection(str, Enum):
    ALL = "all"
    SHOPEE = "shopee"
    LAZADA = "lazada"


class DateRange(BaseModel):
    """Inclusive range of calendar days."""

    start: date
    end: date

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError("date range start must not be after its end")
        return self


class FilterRequest(BaseModel):
    """Selection applied to all collections before any aggregation."""

    date_range: Optional[DateRange] = None
    sub_ids: Optional[Set[str]] = None
    channels: Optional[Set[str]] = None
    platform: PlatformSelection = PlatformSelection.ALL
    validity: Optional[str] = None
    """Lazada "Validity" value to keep; None or "all" keeps every order."""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "date_range": {"start": "2024-01-01", "end": "2024-01-31"},
                    "sub_ids": ["m02Rooftop0623"],
                    "platform": "all",
                }
            ]
        }
    }


# ─────────────────────────────────────────────
# ATTRIBUTION & AGGREGATES
# ─────────────────────────────────────────────


NO_SUB_ID = "NoSubID"


class AttributedSpend(BaseModel):
    """Advertising totals assigned to one Sub ID (or the NoSubID bucket)."""

    sub_id: str
    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    reach: int = 0
    ad_count: int = 0


class Attribution(BaseModel):
    """Spend per matched Sub ID, with unmatched spend held apart.

    The NoSubID bucket never shares a key with a real Sub ID, even one
    literally named "NoSubID".
    """

    by_sub_id: Dict[str, AttributedSpend] = {}
    unattributed: AttributedSpend = Field(default_factory=lambda: AttributedSpend(sub_id=NO_SUB_ID))

    @property
    def total_spend(self) -> float:
        return sum(b.spend for b in self.by_sub_id.values()) + self.unattributed.spend


class SubIdMetrics(BaseModel):
    sub_id: str
    commission_shopee: float = 0.0
    commission_lazada: float = 0.0
    total_commission: float = 0.0
    ad_spend: float = 0.0
    total_profit: float = 0.0
    overall_roi: float = 0.0
    orders_shopee: int = 0
    orders_lazada: int = 0
    unique_orders: int = 0
    cost_per_order: float = 0.0
    amount_lazada: float = 0.0


class PlatformMetrics(BaseModel):
    platform: str
    orders: int = 0
    commission: float = 0.0
    amount: float = 0.0
    ad_spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    reach: int = 0
    total_profit: float = 0.0
    overall_roi: float = 0.0
    cost_per_order: float = 0.0
    """Ad spend per order; Lazada divides by valid orders only."""
    valid_orders: int = 0
    invalid_orders: int = 0
    avg_cpc: float = 0.0


class DailyMetrics(BaseModel):
    date: str  # YYYY-MM-DD or "Unknown"
    orders_shopee: int = 0
    orders_lazada: int = 0
    total_orders: int = 0
    commission_shopee: float = 0.0
    commission_lazada: float = 0.0
    total_commission: float = 0.0
    ad_spend: float = 0.0
    total_profit: float = 0.0
    overall_roi: float = 0.0


class LabelMetrics(BaseModel):
    """Per-category or per-product bucket, keyed by (label, platform)."""

    label: str
    platform: str
    total_commission: float = 0.0
    total_orders: int = 0
    amount: float = 0.0


class Totals(BaseModel):
    total_commission: float = 0.0
    commission_shopee: float = 0.0
    commission_lazada: float = 0.0
    total_ad_spend: float = 0.0
    attributed_ad_spend: float = 0.0
    unattributed_ad_spend: float = 0.0
    total_orders: int = 0
    orders_shopee: int = 0
    orders_lazada: int = 0
    total_amount: float = 0.0
    total_profit: float = 0.0
    overall_roi: float = 0.0
    cost_per_order: float = 0.0
    total_clicks: int = 0
    total_impressions: int = 0
    total_reach: int = 0
    valid_orders_lazada: int = 0
    invalid_orders_lazada: int = 0
    cost_per_order_shopee: float = 0.0
    cost_per_order_lazada: float = 0.0
    amount_per_cost_lazada: float = 0.0
    avg_cpc: float = 0.0


class CampaignSummary(BaseModel):
    """One marketplace Sub ID presented as a campaign row."""

    name: str
    platform: str
    sub_id: str
    orders: int = 0
    commission: float = 0.0
    ad_spend: float = 0.0
    roi: float = 0.0
    status: str = "active"  # "active" | "paused"
    start_date: str = ""  # latest order day, YYYY-MM-DD or "Unknown"
    performance: str = "poor"  # "excellent" | "good" | "average" | "poor"


class AggregateResult(BaseModel):
    """Every metric slice computed from one filtered set of collections."""

    per_sub_id: Dict[str, SubIdMetrics] = {}
    per_platform: Dict[str, PlatformMetrics] = {}
    per_day: Dict[str, DailyMetrics] = {}
    per_category: List[LabelMetrics] = []
    per_product: List[LabelMetrics] = []
    campaigns: List[CampaignSummary] = []
    totals: Totals = Totals()


class PipelineResult(BaseModel):
    """Everything one processing pass produces, as handed to presentation."""

    schema_version: str = "1.0.0"
    generation: int = 0
    generated_at: str = ""
    currency: str = "THB"
    filter: FilterRequest = FilterRequest()
    record_counts: Dict[str, int] = {}
    attribution: Attribution = Attribution()
    aggregates: AggregateResult = AggregateResult()
    merge_report: Optional[MergeReport] = None
    cross_platform: CrossPlatformAnalysis = CrossPlatformAnalysis()
