"""Display formatting for dashboard values.

- Currency: whole euros (€1,234), compact above €1k (€1.2K, €3.4M)
- Percentages: signed, one decimal by default (+5.2%)
- Compact numbers: 950, 1.2K, 3.4M
- ROAS: two decimals with an x suffix (2.50x)
"""

import math


def _missing(value) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def _compact(v: float) -> str:
    if v >= 1_000_000:
        return f"{v / 1_000_000:.1f}M"
    return f"{v / 1_000:.1f}K"


def format_currency(value: float | int | None, compact: bool = False) -> str:
    """Format a euro amount.

    Compact form only kicks in from €1,000 upwards; below that the full
    amount is shown either way.
    """
    if _missing(value):
        return "N/A"
    v = abs(value)
    sign = "-" if value < 0 else ""
    if compact and v >= 1_000:
        return f"{sign}€{_compact(v)}"
    return f"{sign}€{v:,.0f}"


def format_percentage(value: float | int | None, decimals: int = 1) -> str:
    """Format a percentage with an explicit sign (+5.2% / -3.0%)."""
    if _missing(value):
        return "N/A"
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.{decimals}f}%"


def format_compact(value: float | int | None) -> str:
    """Format a number with a K/M suffix."""
    if _missing(value):
        return "N/A"
    v = abs(value)
    sign = "-" if value < 0 else ""
    if v < 1_000:
        return f"{sign}{v:.0f}"
    return f"{sign}{_compact(v)}"


def format_roas(value: float | int | None) -> str:
    if _missing(value):
        return "N/A"
    return f"{value:.2f}x"


def format_ratio_percentage(value: float | int | None) -> str:
    """Format a fractional ratio (0.183) as an unsigned percentage (18.3%)."""
    if _missing(value):
        return "N/A"
    return f"{value * 100:.1f}%"
