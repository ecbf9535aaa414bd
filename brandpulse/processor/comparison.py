"""Year-over-year comparison engine.

Pairs every day of a current-period series with a counterpart from a
reference series and computes the per-day variance. Two alignment modes:

- ``AlignmentMode.EXACT_DATE``: the same calendar date one year earlier.
- ``AlignmentMode.WEEKDAY_POSITION`` (default): the same weekday with the
  same ordinal position in the same month one year earlier, so the 2nd
  Tuesday of March 2026 is compared with the 2nd Tuesday of March 2025.
  When that occurrence does not exist (a 5th Monday that does not recur)
  the naive same day-of-month is used instead.

Counterparts are matched on (date, label); compare aggregated series
(label ``All``) or single-label series.
"""

import calendar
from datetime import date

from brandpulse.schema.models import (
    AlignmentMode,
    DailyMetric,
    DailyVariance,
    YoYComparison,
    day_of_week,
)


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------

def shift_years(d: date, years: int) -> date:
    """Move *d* by whole years, clamping Feb 29 to Feb 28."""
    year = d.year + years
    last = calendar.monthrange(year, d.month)[1]
    return date(year, d.month, min(d.day, last))


def weekday_occurrence(d: date) -> int:
    """Ordinal of *d*'s weekday within its month (1 = first Tuesday, ...)."""
    return (d.day - 1) // 7 + 1


def nth_weekday_of_month(year: int, month: int, weekday: int, n: int) -> date | None:
    """Return the *n*-th occurrence of *weekday* (Sunday = 0) in a month.

    Scans the month's days in order, counting matches. Returns None when the
    month has fewer than *n* such weekdays.
    """
    if n < 1:
        return None
    count = 0
    for day in range(1, calendar.monthrange(year, month)[1] + 1):
        candidate = date(year, month, day)
        if day_of_week(candidate) == weekday:
            count += 1
            if count == n:
                return candidate
    return None


def align_by_weekday_position(current: date) -> date:
    """Prior-year date sharing *current*'s weekday and ordinal position."""
    aligned = nth_weekday_of_month(
        current.year - 1,
        current.month,
        day_of_week(current),
        weekday_occurrence(current),
    )
    if aligned is None:
        return shift_years(current, -1)
    return aligned


def counterpart_date(current: date,
                     mode: AlignmentMode = AlignmentMode.WEEKDAY_POSITION) -> date:
    """Prior-year date that *current* is compared against."""
    if mode is AlignmentMode.EXACT_DATE:
        return shift_years(current, -1)
    return align_by_weekday_position(current)


def previous_year_range(start: date, end: date) -> tuple[date, date]:
    """Shift an inclusive date range back one year."""
    return shift_years(start, -1), shift_years(end, -1)


# ---------------------------------------------------------------------------
# Variance
# ---------------------------------------------------------------------------

def _variance(current: DailyMetric, previous: DailyMetric | None,
              aligned: date) -> DailyVariance:
    previous_revenue = previous.total_revenue if previous else 0.0
    previous_orders = previous.orders if previous else 0
    previous_spend = previous.total_spend if previous else 0.0
    revenue_variance = current.total_revenue - previous_revenue
    if previous_revenue > 0:
        percent = revenue_variance / previous_revenue * 100
    else:
        percent = 0.0
    return DailyVariance(
        date=current.date,
        revenue_variance=revenue_variance,
        revenue_variance_percent=percent,
        orders_variance=current.orders - previous_orders,
        spend_variance=current.total_spend - previous_spend,
        current_revenue=current.total_revenue,
        previous_revenue=previous_revenue,
        counterpart_date=aligned if previous else None,
    )


def compare_periods(current_period: list[DailyMetric],
                    previous_period: list[DailyMetric],
                    mode: AlignmentMode = AlignmentMode.WEEKDAY_POSITION,
                    ) -> YoYComparison:
    """Compute one variance entry per current-period record, in order.

    A day without a counterpart is compared against a zero baseline and gets
    a variance percentage of 0.
    """
    reference: dict = {}
    for m in previous_period:
        reference.setdefault(m.key, m)

    variance = []
    for current in current_period:
        aligned = counterpart_date(current.date, mode)
        previous = reference.get((aligned, current.label))
        variance.append(_variance(current, previous, aligned))

    return YoYComparison(
        current_period=list(current_period),
        previous_period=list(previous_period),
        variance=variance,
    )
