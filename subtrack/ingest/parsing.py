"""SubTrack — Best-effort value parsing.

Neither function ever raises: a value that cannot be read becomes a neutral
default so that one bad cell never blocks aggregation of a batch.
"""

import math
import re
from datetime import date, datetime
from typing import Any, Optional

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
# Longest leading number left after stripping, e.g. "10" from "10-20".
_LEADING_NUMBER = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")

# Tried in order after ISO parsing fails. Day-first wins over month-first
# for ambiguous slashed dates.
DATE_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%d-%m-%Y",
    "%m-%d-%Y",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
    "%d.%m.%Y %H:%M:%S",
    "%d.%m.%Y %H:%M",
    "%d.%m.%Y",
]


def parse_number(value: Any) -> float:
    """Read a currency/count cell as float, 0.0 when it cannot be read."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    cleaned = _NON_NUMERIC.sub("", str(value))
    match = _LEADING_NUMBER.match(cleaned)
    return float(match.group()) if match else 0.0


def parse_date(value: Any) -> Optional[datetime]:
    """Read a date/timestamp cell, None when no known format matches."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    text = str(value).strip()
    if not text:
        return None

    try:
        # Offsets are dropped, keeping the source's wall-clock time
        return datetime.fromisoformat(text).replace(tzinfo=None)
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None
