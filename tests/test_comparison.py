"""Tests for the year-over-year comparison engine."""

from datetime import date

import pytest

from brandpulse.processor.comparison import (
    align_by_weekday_position,
    compare_periods,
    counterpart_date,
    nth_weekday_of_month,
    previous_year_range,
    shift_years,
    weekday_occurrence,
)
from brandpulse.schema.models import AlignmentMode, DailyMetric, day_of_week


def _metric(day, revenue, label="All", orders=0, spend=0.0):
    return DailyMetric.build(day, label, revenue_web=revenue, orders=orders,
                             spend_fb=spend)


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------

class TestShiftYears:
    def test_plain(self):
        assert shift_years(date(2026, 3, 10), -1) == date(2025, 3, 10)

    def test_leap_day_clamped(self):
        assert shift_years(date(2024, 2, 29), -1) == date(2023, 2, 28)


class TestNthWeekdayOfMonth:
    def test_second_tuesday(self):
        # Tuesday = 2 with Sunday = 0
        assert nth_weekday_of_month(2025, 3, 2, 2) == date(2025, 3, 11)

    def test_first_sunday(self):
        assert nth_weekday_of_month(2026, 3, 0, 1) == date(2026, 3, 1)

    def test_missing_fifth_occurrence(self):
        assert nth_weekday_of_month(2025, 3, 2, 5) is None

    def test_non_positive_n(self):
        assert nth_weekday_of_month(2025, 3, 2, 0) is None


class TestWeekdayOccurrence:
    def test_first_week(self):
        assert weekday_occurrence(date(2026, 3, 3)) == 1

    def test_second_week(self):
        assert weekday_occurrence(date(2026, 3, 10)) == 2

    def test_fifth_week(self):
        assert weekday_occurrence(date(2026, 3, 31)) == 5


class TestAlignByWeekdayPosition:
    def test_second_tuesday_maps_to_second_tuesday(self):
        current = date(2026, 3, 10)
        aligned = align_by_weekday_position(current)
        assert aligned == date(2025, 3, 11)
        assert day_of_week(aligned) == day_of_week(current)
        assert weekday_occurrence(aligned) == weekday_occurrence(current)

    @pytest.mark.parametrize("current", [
        date(2026, 1, 5), date(2026, 6, 14), date(2026, 9, 22),
        date(2026, 12, 28), date(2027, 2, 1),
    ])
    def test_weekday_and_position_preserved(self, current):
        aligned = align_by_weekday_position(current)
        assert aligned.year == current.year - 1
        assert aligned.month == current.month
        assert day_of_week(aligned) == day_of_week(current)
        assert weekday_occurrence(aligned) == weekday_occurrence(current)

    def test_missing_occurrence_falls_back_to_same_day(self):
        # 5th Tuesday of March 2026; March 2025 has only four
        assert align_by_weekday_position(date(2026, 3, 31)) == date(2025, 3, 31)


class TestCounterpartDate:
    def test_exact(self):
        assert counterpart_date(date(2026, 3, 10),
                                AlignmentMode.EXACT_DATE) == date(2025, 3, 10)

    def test_default_is_weekday_position(self):
        assert counterpart_date(date(2026, 3, 10)) == date(2025, 3, 11)


class TestPreviousYearRange:
    def test_shift(self):
        assert previous_year_range(date(2026, 3, 1), date(2026, 3, 31)) == (
            date(2025, 3, 1), date(2025, 3, 31))

    def test_leap_end_clamped(self):
        assert previous_year_range(date(2024, 2, 1), date(2024, 2, 29)) == (
            date(2023, 2, 1), date(2023, 2, 28))


# ---------------------------------------------------------------------------
# compare_periods
# ---------------------------------------------------------------------------

class TestComparePeriods:
    def test_weekday_aligned_variance(self):
        current = [_metric(date(2026, 3, 10), 1200, orders=12, spend=100)]
        previous = [_metric(date(2025, 3, 10), 900),
                    _metric(date(2025, 3, 11), 1000, orders=10, spend=80)]
        result = compare_periods(current, previous)
        v = result.variance[0]
        assert v.counterpart_date == date(2025, 3, 11)
        assert v.previous_revenue == 1000
        assert v.revenue_variance == 200
        assert v.revenue_variance_percent == pytest.approx(20.0)
        assert v.orders_variance == 2
        assert v.spend_variance == 20

    def test_exact_date_variance(self):
        current = [_metric(date(2026, 3, 10), 1200)]
        previous = [_metric(date(2025, 3, 10), 900),
                    _metric(date(2025, 3, 11), 1000)]
        result = compare_periods(current, previous, AlignmentMode.EXACT_DATE)
        assert result.variance[0].previous_revenue == 900

    def test_missing_counterpart_is_zero_baseline(self):
        current = [_metric(date(2026, 3, 10), 500)]
        result = compare_periods(current, [])
        v = result.variance[0]
        assert v.previous_revenue == 0
        assert v.revenue_variance == 500
        assert v.revenue_variance_percent == 0.0
        assert v.counterpart_date is None

    def test_zero_previous_revenue_gives_zero_percent(self):
        current = [_metric(date(2026, 3, 10), 500)]
        previous = [_metric(date(2025, 3, 11), 0)]
        assert compare_periods(current, previous).variance[0].revenue_variance_percent == 0.0

    def test_first_reference_match_wins(self):
        current = [_metric(date(2026, 3, 10), 100)]
        previous = [_metric(date(2025, 3, 11), 40),
                    _metric(date(2025, 3, 11), 60)]
        assert compare_periods(current, previous).variance[0].previous_revenue == 40

    def test_matched_on_label(self):
        current = [_metric(date(2026, 3, 10), 100, label="Brand A")]
        previous = [_metric(date(2025, 3, 11), 40, label="Brand B")]
        assert compare_periods(current, previous).variance[0].previous_revenue == 0

    def test_one_entry_per_current_record_in_order(self):
        current = [_metric(date(2026, 3, d), 100) for d in (10, 11, 12)]
        result = compare_periods(current, [])
        assert [v.date for v in result.variance] == [m.date for m in current]
        assert result.current_period == current

    def test_total_revenue_variance(self):
        current = [_metric(date(2026, 3, 10), 100), _metric(date(2026, 3, 11), 50)]
        previous = [_metric(date(2025, 3, 11), 30)]
        result = compare_periods(current, previous)
        assert result.total_revenue_variance == pytest.approx(70 + 50)
