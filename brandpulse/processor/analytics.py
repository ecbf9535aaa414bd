"""Derived metrics calculators.

Pure functions over lists of DailyMetric records that the caller has already
filtered by date range and label: month-to-date pacing, MER/ROAS status
bands, web/app channel split, paid-platform comparison, aggregation by date,
and brand benchmarking. Also the small filters and lookups the dashboard
pages apply before calling them.
"""

import calendar
import math
from datetime import date, datetime

from brandpulse.schema.config import (
    DEFAULT_MER_THRESHOLDS,
    DEFAULT_ROAS_THRESHOLDS,
    EngineConfig,
)
from brandpulse.schema.models import (
    ADDITIVE_FIELDS,
    ALL_LABELS,
    COMBINED_LABEL,
    DEFAULT_ATTRIBUTION,
    BrandBenchmark,
    ChannelSplit,
    ChartPoint,
    DailyMetric,
    EfficiencyStatus,
    EventAnnotation,
    MonthlyTarget,
    PacingData,
    PlatformComparison,
    YoYComparison,
)


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _ratio(numerator, denominator) -> float:
    if denominator > 0:
        return numerator / denominator
    return 0.0


def month_key(d: date) -> str:
    """Canonical ``yyyy-mm`` key of the month containing *d*."""
    return f"{d.year}-{d.month:02d}"


# ---------------------------------------------------------------------------
# Filters and lookups
# ---------------------------------------------------------------------------

def filter_by_date_range(metrics: list[DailyMetric], start, end) -> list[DailyMetric]:
    """Keep records dated within ``[start, end]`` (day granularity)."""
    start, end = _as_date(start), _as_date(end)
    return [m for m in metrics if start <= m.date <= end]


def filter_by_labels(metrics: list[DailyMetric], labels) -> list[DailyMetric]:
    """Keep records for the selected labels.

    An empty selection keeps everything. Selected labels that do not occur
    in the data are ignored; if none of them occur, everything is kept.
    """
    if not labels:
        return list(metrics)
    present = {m.label for m in metrics}
    selected = {label for label in labels if label in present}
    if not selected:
        return list(metrics)
    return [m for m in metrics if m.label in selected]


def events_in_range(events: list[EventAnnotation], start, end,
                    labels=None) -> list[EventAnnotation]:
    """Events dated within ``[start, end]``.

    Events scoped to a label are dropped when a label selection is given
    and does not include it; unscoped events are always kept.
    """
    start, end = _as_date(start), _as_date(end)
    result = []
    for e in events:
        if not start <= e.date <= end:
            continue
        if labels and e.label and e.label not in labels:
            continue
        result.append(e)
    return result


def resolve_target(targets: list[MonthlyTarget], month: str,
                   labels=None) -> MonthlyTarget | None:
    """Combine every target of *month* into one.

    Revenue and order targets are summed across labels (restricted to
    *labels* when given); the MER target is taken from the first match.
    Returns None when nothing matches.
    """
    matches = [t for t in targets if t.month == month
               and (not labels or t.label in labels)]
    if not matches:
        return None
    return MonthlyTarget(
        month=month,
        label=COMBINED_LABEL,
        revenue_target=sum(t.revenue_target for t in matches),
        orders_target=sum(t.orders_target for t in matches),
        mer_target=matches[0].mer_target,
    )


# ---------------------------------------------------------------------------
# Pacing
# ---------------------------------------------------------------------------

def calculate_pacing(metrics: list[DailyMetric], target: MonthlyTarget,
                     reference_date, on_track_threshold: float = 95.0) -> PacingData:
    """Month-to-date revenue against a monthly target.

    *reference_date* is "now": its month is the month being paced and its
    day-of-month is the number of days passed. Revenue of that month is
    projected linearly to month-end.
    """
    now = _as_date(reference_date)
    days_in_month = calendar.monthrange(now.year, now.month)[1]
    days_passed = now.day

    current_revenue = sum(
        m.total_revenue for m in metrics
        if m.date.year == now.year and m.date.month == now.month
    )
    daily_rate = current_revenue / days_passed if days_passed > 0 else 0.0
    projected_revenue = daily_rate * days_in_month

    target_revenue = target.revenue_target
    if target_revenue > 0:
        prorated = target_revenue * (days_passed / days_in_month)
        pacing_percentage = current_revenue / prorated * 100
        projected_percentage = projected_revenue / target_revenue * 100
    else:
        pacing_percentage = 0.0
        projected_percentage = 0.0

    return PacingData(
        current_revenue=current_revenue,
        target_revenue=target_revenue,
        days_passed=days_passed,
        days_in_month=days_in_month,
        projected_revenue=projected_revenue,
        pacing_percentage=pacing_percentage,
        projected_percentage=projected_percentage,
        on_track=projected_percentage >= on_track_threshold,
    )


# ---------------------------------------------------------------------------
# Efficiency status
# ---------------------------------------------------------------------------

def classify_mer(value: float, thresholds=None) -> EfficiencyStatus:
    """Band a MER value (spend / revenue, lower is better).

    The value falls in the first band whose bound it is below; anything
    above every bound lands in the last band.
    """
    thresholds = thresholds or DEFAULT_MER_THRESHOLDS
    for bound, band in thresholds[:-1]:
        if value < bound:
            return EfficiencyStatus(value=value, status=band, threshold=bound)
    bound, band = thresholds[-1]
    return EfficiencyStatus(value=value, status=band, threshold=bound)


def classify_roas(value: float, thresholds=None) -> EfficiencyStatus:
    """Band a ROAS value (revenue / spend, higher is better)."""
    thresholds = thresholds or DEFAULT_ROAS_THRESHOLDS
    for bound, band in thresholds:
        if value >= bound:
            return EfficiencyStatus(value=value, status=band, threshold=bound)
    bound, band = thresholds[-1]
    return EfficiencyStatus(value=value, status=band, threshold=bound)


def calculate_mer_status(metrics: list[DailyMetric],
                         config: EngineConfig | None = None) -> EfficiencyStatus:
    revenue = sum(m.total_revenue for m in metrics)
    spend = sum(m.total_spend for m in metrics)
    thresholds = config.mer_thresholds if config else None
    return classify_mer(_ratio(spend, revenue), thresholds)


def calculate_roas_status(metrics: list[DailyMetric],
                          config: EngineConfig | None = None) -> EfficiencyStatus:
    revenue = sum(m.total_revenue for m in metrics)
    spend = sum(m.total_spend for m in metrics)
    thresholds = config.roas_thresholds if config else None
    return classify_roas(_ratio(revenue, spend), thresholds)


# ---------------------------------------------------------------------------
# Channel and platform splits
# ---------------------------------------------------------------------------

def calculate_channel_split(metrics: list[DailyMetric]) -> ChannelSplit:
    """Web vs. app revenue, absolute and as a share of the total."""
    web = sum(m.revenue_web for m in metrics)
    app = sum(m.revenue_app for m in metrics)
    total = web + app
    return ChannelSplit(
        web=web,
        app=app,
        web_percentage=web / total * 100 if total > 0 else 0.0,
        app_percentage=app / total * 100 if total > 0 else 0.0,
    )


def calculate_platform_comparison(metrics: list[DailyMetric],
                                  attribution=None) -> list[PlatformComparison]:
    """Spend, attributed revenue, ROAS, CPC and CPA per paid platform.

    Web revenue and orders are split across platforms by the attribution
    shares (default 60% facebook / 40% google); the order split is floored
    to whole orders.
    """
    attribution = attribution or DEFAULT_ATTRIBUTION
    revenue_web = sum(m.revenue_web for m in metrics)
    orders = sum(m.orders for m in metrics)
    totals = {
        "facebook": (sum(m.spend_fb for m in metrics),
                     sum(m.clicks_fb for m in metrics)),
        "google": (sum(m.spend_google for m in metrics),
                   sum(m.clicks_google for m in metrics)),
    }

    result = []
    for platform, share in attribution.items():
        spend, clicks = totals[platform.value]
        revenue = revenue_web * share
        platform_orders = math.floor(orders * share)
        result.append(PlatformComparison(
            platform=platform,
            spend=spend,
            revenue=revenue,
            roas=_ratio(revenue, spend),
            clicks=clicks,
            cpc=_ratio(spend, clicks),
            cpa=_ratio(spend, platform_orders),
        ))
    return result


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def aggregate_by_date(metrics: list[DailyMetric], attribution=None,
                      label: str = ALL_LABELS) -> list[DailyMetric]:
    """Collapse all labels on the same date into one record per date.

    Additive fields are summed; aov, mer and the platform ROAS values are
    recomputed from the sums, never averaged.
    """
    sums: dict[date, dict[str, float]] = {}
    for m in metrics:
        acc = sums.setdefault(m.date, dict.fromkeys(ADDITIVE_FIELDS, 0))
        for name in ADDITIVE_FIELDS:
            acc[name] += getattr(m, name)

    return [
        DailyMetric.build(day, label, attribution=attribution, **acc)
        for day, acc in sorted(sums.items())
    ]


# ---------------------------------------------------------------------------
# Brand benchmarking
# ---------------------------------------------------------------------------

def _totals_by_label(metrics: list[DailyMetric]) -> dict[str, dict]:
    totals: dict[str, dict] = {}
    for m in metrics:
        t = totals.setdefault(m.label, {"revenue": 0.0, "spend": 0.0, "orders": 0})
        t["revenue"] += m.total_revenue
        t["spend"] += m.total_spend
        t["orders"] += m.orders
    return totals


def calculate_brand_benchmarks(current: list[DailyMetric],
                               comparison: list[DailyMetric]) -> list[BrandBenchmark]:
    """Per-label totals with growth against a comparison period.

    *comparison* must be filtered the same way as *current* (same labels,
    equivalent period). Growth is 0% for a label without comparison
    revenue. Sorted by revenue, highest first.
    """
    previous = _totals_by_label(comparison)
    benchmarks = []
    for label, t in _totals_by_label(current).items():
        prev_revenue = previous.get(label, {}).get("revenue", 0.0)
        growth_value = t["revenue"] - prev_revenue
        benchmarks.append(BrandBenchmark(
            label=label,
            revenue=t["revenue"],
            spend=t["spend"],
            roas=_ratio(t["revenue"], t["spend"]),
            orders=t["orders"],
            aov=_ratio(t["revenue"], t["orders"]),
            growth_percentage=_ratio(growth_value, prev_revenue) * 100,
            growth_value=growth_value,
        ))
    return rank_benchmarks(benchmarks, "revenue")


RANKINGS = {
    "revenue": lambda b: b.revenue,
    "roas": lambda b: b.roas,
    "growth": lambda b: b.growth_percentage,
}


def rank_benchmarks(benchmarks: list[BrandBenchmark], by: str = "revenue") -> list[BrandBenchmark]:
    """Sort benchmarks best-first by 'revenue', 'roas' or 'growth'."""
    if by not in RANKINGS:
        raise ValueError(
            f"Unknown ranking '{by}'. Valid rankings: {', '.join(sorted(RANKINGS))}"
        )
    return sorted(benchmarks, key=RANKINGS[by], reverse=True)


# ---------------------------------------------------------------------------
# Chart series
# ---------------------------------------------------------------------------

def build_chart_series(metrics: list[DailyMetric],
                       comparison: YoYComparison | None = None) -> list[ChartPoint]:
    """One chart point per record; comparison entries are matched by index."""
    points = []
    for index, m in enumerate(metrics):
        point = ChartPoint(
            date=m.date_string,
            display_date=f"{calendar.month_abbr[m.date.month]} {m.date.day}",
            revenue=m.total_revenue,
            spend=m.total_spend,
            orders=m.orders,
            aov=m.aov,
            roas=_ratio(m.total_revenue, m.total_spend),
        )
        if comparison is not None and index < len(comparison.variance):
            v = comparison.variance[index]
            point.revenue_previous = v.previous_revenue
            point.variance = v.revenue_variance
        points.append(point)
    return points
