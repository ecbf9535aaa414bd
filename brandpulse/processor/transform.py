"""Row transformation module for Brand Pulse.

Takes raw string-valued spreadsheet records (from the ingestion module) and
turns each one into a typed record, or says why it could not:

- daily rows   -> DailyMetric
- target rows  -> MonthlyTarget
- event rows   -> EventAnnotation

Every transform returns a ``RowResult`` tagged valid / empty / invalid, so
callers never see a half-filled record. Header spelling drift upstream is
absorbed by the single ``HEADER_ALIASES`` table.
"""

import re
from dataclasses import dataclass
from typing import Any, Mapping

from brandpulse.schema.models import (
    DEFAULT_ATTRIBUTION,
    DailyMetric,
    EventAnnotation,
    EventType,
    MonthlyTarget,
    RowStatus,
)

from .ingestion import parse_decimal, parse_event_date, parse_local_date


UNKNOWN_LABEL = "Unknown"
DEFAULT_MER_TARGET = 0.2


# ---------------------------------------------------------------------------
# Header lookup
# ---------------------------------------------------------------------------

# Canonical field -> accepted header spellings. Matching ignores case and
# every non-alphanumeric character, so "Rev_target" == "Rev Target".
HEADER_ALIASES = {
    # daily rows
    "date": ("Date", "Datum", "Day"),
    "label": ("Label", "Brand", "Merk"),
    "revenue_web": ("Rev_Web", "Revenue_Web", "Web_Revenue"),
    "revenue_app": ("Rev_App", "Revenue_App", "App_Revenue"),
    "orders": ("Orders", "Orders_Total", "Total_Orders"),
    "orders_app": ("Orders_App", "App_Orders"),
    "clicks_fb": ("Conv_FB", "Conversions_FB", "Clicks_FB"),
    "clicks_google": ("Conv_Google", "Conversions_Google", "Clicks_Google"),
    "spend_fb": ("Spend_FB", "FB_Spend", "Spend_Facebook"),
    "spend_google": ("Spend_Google", "Google_Spend"),
    # target rows
    "month": ("Month", "Maand", "Period"),
    "revenue_target": ("Revenue_Target", "Rev_Target", "Target_Revenue",
                       "Omzet_Target"),
    "orders_target": ("Orders_Target", "Order_Target", "Target_Orders"),
    "mer_target": ("MER_Target", "Target_MER", "MER"),
    # event rows
    "title": ("Title", "Event", "Name"),
    "description": ("Description", "Details", "Omschrijving"),
    "type": ("Type", "Category", "Event_Type"),
}


def _norm_header(name: Any) -> str:
    return re.sub(r"[^0-9a-z]", "", str(name).lower())


_ALIAS_LOOKUP = {
    field: {_norm_header(a) for a in aliases}
    for field, aliases in HEADER_ALIASES.items()
}


def lookup(row: Mapping[str, Any], field: str, default: str = "") -> str:
    """Return the cell for a canonical field, trying every known spelling."""
    wanted = _ALIAS_LOOKUP[field]
    for key, value in row.items():
        if _norm_header(key) in wanted:
            if value is None:
                return default
            return str(value).strip()
    return default


# ---------------------------------------------------------------------------
# Tagged result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RowResult:
    """Outcome of transforming one raw row."""
    status: RowStatus
    record: Any = None
    reason: str = ""

    @classmethod
    def valid(cls, record) -> "RowResult":
        return cls(RowStatus.VALID, record=record)

    @classmethod
    def empty(cls) -> "RowResult":
        return cls(RowStatus.EMPTY)

    @classmethod
    def invalid(cls, reason: str) -> "RowResult":
        return cls(RowStatus.INVALID, reason=reason)

    @property
    def is_valid(self) -> bool:
        return self.status is RowStatus.VALID

    @property
    def is_empty(self) -> bool:
        return self.status is RowStatus.EMPTY

    @property
    def is_invalid(self) -> bool:
        return self.status is RowStatus.INVALID


def _check_row(row) -> None:
    if not isinstance(row, Mapping):
        raise TypeError(
            f"Expected a mapping of header -> cell, got {type(row).__name__}"
        )


# ---------------------------------------------------------------------------
# Daily rows
# ---------------------------------------------------------------------------

def transform_row(row: Mapping[str, Any], attribution=None) -> RowResult:
    """Transform one daily spreadsheet row into a DailyMetric.

    Rows with blank date and blank label are empty. A date that cannot be
    parsed makes the row invalid. Absent or unparsable numbers count as 0.

    Raises:
        TypeError: If *row* is not a mapping.
    """
    _check_row(row)
    raw_date = lookup(row, "date")
    raw_label = lookup(row, "label")
    if not raw_date and not raw_label:
        return RowResult.empty()

    day = parse_local_date(raw_date)
    if day is None:
        return RowResult.invalid(f"unparsable date {raw_date!r}")

    metric = DailyMetric.build(
        day,
        raw_label or UNKNOWN_LABEL,
        revenue_web=parse_decimal(lookup(row, "revenue_web")),
        revenue_app=parse_decimal(lookup(row, "revenue_app")),
        orders=parse_decimal(lookup(row, "orders")),
        orders_app=parse_decimal(lookup(row, "orders_app")),
        spend_fb=parse_decimal(lookup(row, "spend_fb")),
        spend_google=parse_decimal(lookup(row, "spend_google")),
        clicks_fb=parse_decimal(lookup(row, "clicks_fb")),
        clicks_google=parse_decimal(lookup(row, "clicks_google")),
        attribution=attribution or DEFAULT_ATTRIBUTION,
    )
    return RowResult.valid(metric)


# ---------------------------------------------------------------------------
# Target rows
# ---------------------------------------------------------------------------

_MONTH_YEAR = re.compile(r"^(\d{1,2})\s*[-/.]\s*(\d{4})$")
_YEAR_MONTH = re.compile(r"^(\d{4})\s*[-/.]\s*(\d{1,2})$")


def normalize_month_key(value: str | None) -> str | None:
    """Normalize a month-year spelling to the canonical ``yyyy-mm`` key.

    Accepts ``m-yyyy``, ``mm-yyyy``, ``m/yyyy``, ``m.yyyy`` and ``yyyy-mm``.
    Returns None when the text is not a month or the month is out of range.

        "1-2025"  -> "2025-01"
        "12/2025" -> "2025-12"
        "2025-3"  -> "2025-03"
    """
    if value is None:
        return None
    s = str(value).strip()
    match = _MONTH_YEAR.match(s)
    if match:
        month, year = int(match.group(1)), match.group(2)
    else:
        match = _YEAR_MONTH.match(s)
        if not match:
            return None
        year, month = match.group(1), int(match.group(2))
    if not 1 <= month <= 12:
        return None
    return f"{year}-{month:02d}"


def normalize_mer_target(value: float, default: float = DEFAULT_MER_TARGET) -> float:
    """MER targets above 1 are percentages; store them as fractions."""
    if value <= 0:
        return default
    if value > 1:
        return value / 100
    return value


def transform_target_row(row: Mapping[str, Any],
                         default_mer_target: float = DEFAULT_MER_TARGET) -> RowResult:
    """Transform one target row into a MonthlyTarget."""
    _check_row(row)
    raw_month = lookup(row, "month")
    raw_label = lookup(row, "label")
    if not raw_month and not raw_label:
        return RowResult.empty()

    month = normalize_month_key(raw_month)
    if month is None:
        return RowResult.invalid(f"unparsable month {raw_month!r}")

    target = MonthlyTarget(
        month=month,
        label=raw_label or UNKNOWN_LABEL,
        revenue_target=parse_decimal(lookup(row, "revenue_target")),
        orders_target=int(round(parse_decimal(lookup(row, "orders_target")))),
        mer_target=normalize_mer_target(
            parse_decimal(lookup(row, "mer_target")), default_mer_target),
    )
    return RowResult.valid(target)


# ---------------------------------------------------------------------------
# Event rows
# ---------------------------------------------------------------------------

def transform_event_row(row: Mapping[str, Any]) -> RowResult:
    """Transform one event row into an EventAnnotation."""
    _check_row(row)
    raw_date = lookup(row, "date")
    title = lookup(row, "title")
    if not raw_date and not title:
        return RowResult.empty()

    day = parse_event_date(raw_date)
    if day is None:
        return RowResult.invalid(f"unparsable event date {raw_date!r}")
    if not title:
        return RowResult.invalid("event without a title")

    event = EventAnnotation(
        date=day,
        title=title,
        event_type=EventType.parse(lookup(row, "type")),
        description=lookup(row, "description") or None,
        label=lookup(row, "label") or None,
    )
    return RowResult.valid(event)
