"""SubTrack — Raw Row → Canonical Record Normalizer.

Converts rows handed over by the spreadsheet parser or the advertising API
client into OrderRecord / AdRecord instances, using the platform schema
registry to resolve column names.
"""

from collections.abc import Iterable, Mapping
from typing import Any, List, Optional, Union

from subtrack.core.errors import StructuralFailure
from subtrack.core.logging import get_logger
from subtrack.core.schema_registry import PlatformSchema, RecordKind
from subtrack.ingest.parsing import parse_date, parse_number
from subtrack.models.canonical_models import AdRecord, OrderRecord, Origin

logger = get_logger("ingest.normalizer")

CanonicalRecord = Union[OrderRecord, AdRecord]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _field(row: Mapping, schema: PlatformSchema, field: str) -> Any:
    """Return the first non-blank value among the field's column aliases."""
    for column in schema.aliases(field):
        value = row.get(column)
        if not _is_blank(value):
            return value
    return None


def _text(row: Mapping, schema: PlatformSchema, field: str) -> str:
    value = _field(row, schema, field)
    return "" if value is None else str(value).strip()


def extract_sub_ids(row: Mapping, schema: PlatformSchema) -> List[str]:
    """Read the platform's Sub ID slots in order, skipping empty ones.

    Repeats across slots are kept; consumers key by value.
    """
    sub_ids: List[str] = []
    for column in schema.sub_id_columns:
        value = row.get(column)
        if value is None:
            continue
        sub_id = str(value).strip()
        if sub_id:
            sub_ids.append(sub_id)
    return sub_ids


def _normalize_order(
    row: Mapping, schema: PlatformSchema, origin: Origin
) -> Optional[OrderRecord]:
    order_id = _text(row, schema, "order_id")
    if not order_id:
        return None
    channel = _text(row, schema, "channel") if schema.aliases("channel") else ""
    return OrderRecord(
        platform=schema.platform,
        order_id=order_id,
        sub_ids=extract_sub_ids(row, schema),
        channel=channel or None,
        category=_text(row, schema, "category"),
        product=_text(row, schema, "product"),
        commission=parse_number(_field(row, schema, "commission")),
        amount=parse_number(_field(row, schema, "amount")),
        order_time=parse_date(_field(row, schema, "order_time")),
        status=_text(row, schema, "status"),
        validity=_text(row, schema, "validity"),
        origin=origin,
    )


def _normalize_ad(row: Mapping, schema: PlatformSchema, origin: Origin) -> AdRecord:
    return AdRecord(
        platform=schema.platform,
        campaign_name=_text(row, schema, "campaign_name"),
        ad_set_name=_text(row, schema, "ad_set_name"),
        ad_name=_text(row, schema, "ad_name"),
        spend=parse_number(_field(row, schema, "spend")),
        impressions=int(parse_number(_field(row, schema, "impressions"))),
        clicks=int(parse_number(_field(row, schema, "clicks"))),
        reach=int(parse_number(_field(row, schema, "reach"))),
        ctr=parse_number(_field(row, schema, "ctr")),
        cpm=parse_number(_field(row, schema, "cpm")),
        cpc=parse_number(_field(row, schema, "cpc")),
        date=parse_date(_field(row, schema, "date")),
        origin=origin,
    )


def normalize(
    row: Any, schema: PlatformSchema, origin: Origin
) -> Optional[CanonicalRecord]:
    """Normalize one raw row. Returns None when the row carries nothing usable."""
    if not isinstance(row, Mapping):
        return None
    if schema.kind == RecordKind.ORDER:
        return _normalize_order(row, schema, origin)
    return _normalize_ad(row, schema, origin)


def _check_structure(rows: list, schema: PlatformSchema) -> None:
    """Fail the batch when a required field has no column in any row."""
    mappings = [r for r in rows if isinstance(r, Mapping)]
    if rows and not mappings:
        raise StructuralFailure(
            f"No {schema.platform.value} row is a column mapping",
            platform=schema.platform.value,
        )
    for field in schema.required_fields:
        aliases = schema.aliases(field)
        if mappings and not any(a in row for row in mappings for a in aliases):
            raise StructuralFailure(
                f"{schema.platform.value} rows have no column for required field "
                f"'{field}' (expected one of: {', '.join(aliases)})",
                platform=schema.platform.value,
            )


def normalize_rows(
    rows: Any, schema: PlatformSchema, origin: Origin
) -> List[CanonicalRecord]:
    """Normalize a whole batch of rows from one platform and origin."""
    if isinstance(rows, (str, bytes, Mapping)) or not isinstance(rows, Iterable):
        raise StructuralFailure(
            f"{schema.platform.value} input is not a sequence of rows",
            platform=schema.platform.value,
        )
    rows = list(rows)
    _check_structure(rows, schema)

    records: List[CanonicalRecord] = []
    skipped = 0
    for row in rows:
        record = normalize(row, schema, origin)
        if record is None:
            skipped += 1
            continue
        records.append(record)

    if skipped:
        logger.warning(
            f"Skipped {skipped} unusable {schema.platform.value} rows",
            extra={"platform": schema.platform.value, "origin": origin.value},
        )
    logger.info(
        f"Normalized {len(records)} {schema.platform.value} rows from {origin.value}",
        extra={
            "platform": schema.platform.value,
            "origin": origin.value,
            "record_count": len(records),
        },
    )
    return records
