"""SubTrack — Display Formatting.

Aggregates keep full float precision; rounding only happens here, at the
presentation boundary.
"""


def format_currency(value: float) -> str:
    """12345.678 → '12,345.68'"""
    return f"{value:,.2f}"


def format_percentage(value: float) -> str:
    """12.345 → '12.3%'"""
    return f"{value:.1f}%"


def format_roi(roi: float, ad_spend: float) -> str:
    """ROI is meaningless without spend; show a dash instead of 0.0%."""
    if ad_spend <= 0:
        return "-"
    return format_percentage(roi)
