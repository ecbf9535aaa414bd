"""Data models - the contract between ingestion, harmonizer, and analytics.

Defines the typed records the engine passes around: one ``DailyMetric`` per
brand label per calendar day, monthly targets, event annotations, the
immutable ``HarmonizedDataset`` and the small result records returned by the
derived-metrics calculators.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

import pandas as pd


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Platform(Enum):
    """Paid-media platform."""
    FACEBOOK = "facebook"
    GOOGLE = "google"


class EventType(Enum):
    """Category tag of an event annotation (drives chart colouring)."""
    MARKETING = "marketing"
    TECHNICAL = "technical"
    HOLIDAY = "holiday"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | None) -> "EventType":
        """Map a free-form tag to an EventType, defaulting to OTHER."""
        if not value:
            return cls.OTHER
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.OTHER


class StatusBand(Enum):
    """Ordered status bands for efficiency ratios, best first."""
    EXCELLENT = "excellent"
    GOOD = "good"
    WARNING = "warning"
    DANGER = "danger"


class AlignmentMode(Enum):
    """How a current-period day finds its prior-year counterpart."""
    EXACT_DATE = "exact_date"
    WEEKDAY_POSITION = "weekday_position"


class SourceType(Enum):
    HISTORICAL = "historical"
    LIVE = "live"


class RowStatus(Enum):
    VALID = "valid"
    EMPTY = "empty"
    INVALID = "invalid"


# Share of web revenue credited to each platform. The sheet carries no
# measured attribution, so platform revenue is an estimate.
DEFAULT_ATTRIBUTION = {
    Platform.FACEBOOK: 0.6,
    Platform.GOOGLE: 0.4,
}

ALL_LABELS = "All"
COMBINED_LABEL = "Combined"


# ---------------------------------------------------------------------------
# Date metadata
# ---------------------------------------------------------------------------

def day_of_week(d: date) -> int:
    """Weekday index with Sunday = 0 ... Saturday = 6."""
    return (d.weekday() + 1) % 7


def week_of_month(d: date) -> int:
    """Calendar week row of *d* within its month (1-based).

    ``ceil((day + weekday of the 1st) / 7)`` with Sunday-first weeks, so the
    result runs from 1 to 6.
    """
    first_offset = day_of_week(d.replace(day=1))
    return math.ceil((d.day + first_offset) / 7)


def _ratio(numerator: float, denominator: float) -> float:
    """Divide, returning 0 when the denominator is not positive."""
    if denominator > 0:
        return numerator / denominator
    return 0.0


# ---------------------------------------------------------------------------
# DailyMetric
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DailyMetric:
    """One brand label's activity on one calendar day.

    Totals and ratios are derived by :meth:`build`; construct records through
    it (or :meth:`zero`) so the derived fields always agree with the inputs.
    """
    date: date
    label: str

    revenue_web: float = 0.0
    revenue_app: float = 0.0
    total_revenue: float = 0.0

    orders: int = 0
    orders_app: int = 0
    orders_web: int = 0
    aov: float = 0.0

    spend_fb: float = 0.0
    spend_google: float = 0.0
    total_spend: float = 0.0

    clicks_fb: int = 0
    clicks_google: int = 0
    total_clicks: int = 0

    mer: float = 0.0
    contribution_margin: float = 0.0
    roas_fb: float = 0.0
    roas_google: float = 0.0

    day_of_week: int = 0
    week_of_month: int = 1
    month_day: int = 1

    @classmethod
    def build(cls, day: date, label: str, *,
              revenue_web: float = 0.0, revenue_app: float = 0.0,
              orders: float = 0, orders_app: float = 0,
              spend_fb: float = 0.0, spend_google: float = 0.0,
              clicks_fb: float = 0, clicks_google: float = 0,
              attribution: dict | None = None) -> "DailyMetric":
        """Build a record from its additive inputs and derive the rest."""
        if attribution is None:
            attribution = DEFAULT_ATTRIBUTION
        total_revenue = revenue_web + revenue_app
        total_spend = spend_fb + spend_google
        orders = int(round(orders))
        orders_app = int(round(orders_app))
        clicks_fb = int(round(clicks_fb))
        clicks_google = int(round(clicks_google))
        fb_share = attribution.get(Platform.FACEBOOK, 0.0)
        google_share = attribution.get(Platform.GOOGLE, 0.0)
        return cls(
            date=day,
            label=label,
            revenue_web=revenue_web,
            revenue_app=revenue_app,
            total_revenue=total_revenue,
            orders=orders,
            orders_app=orders_app,
            orders_web=orders - orders_app,
            aov=_ratio(total_revenue, orders),
            spend_fb=spend_fb,
            spend_google=spend_google,
            total_spend=total_spend,
            clicks_fb=clicks_fb,
            clicks_google=clicks_google,
            total_clicks=clicks_fb + clicks_google,
            mer=_ratio(total_spend, total_revenue),
            contribution_margin=total_revenue - total_spend,
            roas_fb=_ratio(revenue_web * fb_share, spend_fb),
            roas_google=_ratio(revenue_web * google_share, spend_google),
            day_of_week=day_of_week(day),
            week_of_month=week_of_month(day),
            month_day=day.day,
        )

    @classmethod
    def zero(cls, day: date, label: str) -> "DailyMetric":
        """Zero-valued record used to fill a missing (day, label) pair."""
        return cls.build(day, label)

    @property
    def date_string(self) -> str:
        return self.date.isoformat()

    @property
    def key(self) -> tuple[date, str]:
        return (self.date, self.label)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"date": self.date_string, "label": self.label}
        for name in METRIC_FIELDS:
            d[name] = getattr(self, name)
        return d


METRIC_FIELDS = [
    "revenue_web", "revenue_app", "total_revenue",
    "orders", "orders_app", "orders_web", "aov",
    "spend_fb", "spend_google", "total_spend",
    "clicks_fb", "clicks_google", "total_clicks",
    "mer", "contribution_margin", "roas_fb", "roas_google",
    "day_of_week", "week_of_month", "month_day",
]

# Fields that are plain sums across records; everything else is derived.
ADDITIVE_FIELDS = [
    "revenue_web", "revenue_app", "orders", "orders_app",
    "spend_fb", "spend_google", "clicks_fb", "clicks_google",
]


# ---------------------------------------------------------------------------
# Targets and events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MonthlyTarget:
    """One label's goals for one calendar month (``yyyy-mm``)."""
    month: str
    label: str
    revenue_target: float = 0.0
    orders_target: int = 0
    mer_target: float = 0.2   # fraction, e.g. 0.2 = 20%

    def to_dict(self) -> dict:
        return {
            "month": self.month,
            "label": self.label,
            "revenue_target": self.revenue_target,
            "orders_target": self.orders_target,
            "mer_target": self.mer_target,
        }


@dataclass(frozen=True)
class EventAnnotation:
    """A point-in-time business event shown on trend charts."""
    date: date
    title: str
    event_type: EventType = EventType.OTHER
    description: str | None = None
    label: str | None = None  # None = applies to every brand

    @property
    def date_string(self) -> str:
        return self.date.isoformat()

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "date": self.date_string,
            "title": self.title,
            "type": self.event_type.value,
        }
        if self.description:
            d["description"] = self.description
        if self.label:
            d["label"] = self.label
        return d


# ---------------------------------------------------------------------------
# Harmonized dataset
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DataSource:
    """Provenance of one ingested batch."""
    source_type: SourceType
    year: int
    rows: int
    first_date: date | None = None
    last_date: date | None = None

    def to_dict(self) -> dict:
        return {
            "type": self.source_type.value,
            "year": self.year,
            "rows": self.rows,
            "first_date": self.first_date.isoformat() if self.first_date else None,
            "last_date": self.last_date.isoformat() if self.last_date else None,
        }


@dataclass(frozen=True)
class HarmonizedDataset:
    """The engine's single output for one ingestion cycle.

    Metrics are date-sorted and hold exactly one record per (date, label)
    when the dataset was built with gap filling.
    """
    metrics: tuple[DailyMetric, ...] = ()
    targets: tuple[MonthlyTarget, ...] = ()
    events: tuple[EventAnnotation, ...] = ()
    sources: tuple[DataSource, ...] = ()
    last_updated: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc))
    warnings: tuple[str, ...] = ()

    @property
    def labels(self) -> list[str]:
        """Distinct labels in first-seen order."""
        return list(dict.fromkeys(m.label for m in self.metrics))

    @property
    def first_date(self) -> date | None:
        return self.metrics[0].date if self.metrics else None

    @property
    def last_date(self) -> date | None:
        return self.metrics[-1].date if self.metrics else None

    def target_for(self, month: str, label: str | None = None) -> MonthlyTarget | None:
        """Look up the target for a canonical ``yyyy-mm`` month key."""
        for t in self.targets:
            if t.month == month and (label is None or t.label == label):
                return t
        return None

    def to_frame(self) -> pd.DataFrame:
        """Metrics as a DataFrame, one row per record, in dataset order."""
        columns = ["date", "label"] + METRIC_FIELDS
        return pd.DataFrame([m.to_dict() for m in self.metrics], columns=columns)

    def to_dict(self) -> dict:
        return {
            "metrics": [m.to_dict() for m in self.metrics],
            "targets": [t.to_dict() for t in self.targets],
            "events": [e.to_dict() for e in self.events],
            "sources": [s.to_dict() for s in self.sources],
            "last_updated": self.last_updated.isoformat(),
            "warnings": list(self.warnings),
        }


# ---------------------------------------------------------------------------
# Result records
# ---------------------------------------------------------------------------

@dataclass
class BatchSummary:
    """Outcome of adding one batch to the harmonizer."""
    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0   # empty rows and out-of-year rows

    def __str__(self) -> str:
        return (f"{self.success_count} ok, {self.error_count} error(s), "
                f"{self.skipped_count} skipped")


@dataclass
class PacingData:
    current_revenue: float
    target_revenue: float
    days_passed: int
    days_in_month: int
    projected_revenue: float
    pacing_percentage: float     # current vs. time-prorated target
    projected_percentage: float  # projection vs. full target
    on_track: bool


@dataclass
class EfficiencyStatus:
    value: float
    status: StatusBand
    threshold: float


@dataclass
class ChannelSplit:
    web: float
    app: float
    web_percentage: float
    app_percentage: float


@dataclass
class PlatformComparison:
    platform: Platform
    spend: float
    revenue: float   # attributed
    roas: float
    clicks: int
    cpc: float
    cpa: float       # estimated from a proportional order split


@dataclass
class DailyVariance:
    date: date
    revenue_variance: float
    revenue_variance_percent: float
    orders_variance: int
    spend_variance: float
    current_revenue: float
    previous_revenue: float
    counterpart_date: date | None = None


@dataclass
class YoYComparison:
    current_period: list[DailyMetric]
    previous_period: list[DailyMetric]
    variance: list[DailyVariance]

    @property
    def total_revenue_variance(self) -> float:
        return sum(v.revenue_variance for v in self.variance)


@dataclass
class BrandBenchmark:
    label: str
    revenue: float
    spend: float
    roas: float
    orders: int
    aov: float
    growth_percentage: float
    growth_value: float


@dataclass
class ChartPoint:
    date: str
    display_date: str
    revenue: float
    spend: float
    orders: int
    aov: float
    roas: float
    revenue_previous: float | None = None
    variance: float | None = None
