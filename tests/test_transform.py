"""Tests for the row transformation module."""

from datetime import date

import pytest

from brandpulse.processor.transform import (
    UNKNOWN_LABEL,
    RowResult,
    lookup,
    normalize_mer_target,
    normalize_month_key,
    transform_event_row,
    transform_row,
    transform_target_row,
)
from brandpulse.schema.models import EventType, Platform, RowStatus


def _make_row(**overrides):
    row = {
        "Date": "4-2-2026",
        "Label": "Brand A",
        "Rev_Web": "1.000,00",
        "Rev_App": "500",
        "Orders": "30",
        "Orders_App": "10",
        "Conv_FB": "100",
        "Conv_Google": "50",
        "Spend_FB": "120,00",
        "Spend_Google": "80",
    }
    row.update(overrides)
    return row


# ---------------------------------------------------------------------------
# lookup
# ---------------------------------------------------------------------------

class TestLookup:
    def test_exact_header(self):
        assert lookup({"Rev_Web": "10"}, "revenue_web") == "10"

    def test_case_and_separator_insensitive(self):
        assert lookup({"rev web": "10"}, "revenue_web") == "10"
        assert lookup({"REV-WEB": "10"}, "revenue_web") == "10"

    def test_alias(self):
        assert lookup({"Brand": "Brand A"}, "label") == "Brand A"

    def test_missing_returns_default(self):
        assert lookup({}, "revenue_web") == ""
        assert lookup({}, "revenue_web", default="0") == "0"

    def test_none_cell_returns_default(self):
        assert lookup({"Rev_Web": None}, "revenue_web") == ""

    def test_value_stripped(self):
        assert lookup({"Label": "  Brand A "}, "label") == "Brand A"


# ---------------------------------------------------------------------------
# transform_row
# ---------------------------------------------------------------------------

class TestTransformRow:
    def test_valid_row(self):
        result = transform_row(_make_row())
        assert result.is_valid
        m = result.record
        assert m.date == date(2026, 2, 4)
        assert m.label == "Brand A"
        assert m.revenue_web == 1000.0
        assert m.revenue_app == 500.0
        assert m.total_revenue == 1500.0
        assert m.orders == 30
        assert m.orders_web == 20
        assert m.aov == pytest.approx(50.0)
        assert m.total_spend == 200.0
        assert m.mer == pytest.approx(200 / 1500)
        assert m.contribution_margin == 1300.0
        assert m.total_clicks == 150

    def test_attributed_roas(self):
        m = transform_row(_make_row()).record
        assert m.roas_fb == pytest.approx(600 / 120)
        assert m.roas_google == pytest.approx(400 / 80)

    def test_custom_attribution(self):
        attribution = {Platform.FACEBOOK: 0.5, Platform.GOOGLE: 0.5}
        m = transform_row(_make_row(), attribution=attribution).record
        assert m.roas_fb == pytest.approx(500 / 120)
        assert m.roas_google == pytest.approx(500 / 80)

    def test_date_metadata(self):
        m = transform_row(_make_row()).record
        assert m.day_of_week == 3   # Wednesday, Sunday = 0
        assert m.week_of_month == 1
        assert m.month_day == 4

    def test_blank_date_and_label_is_empty(self):
        result = transform_row({"Date": "", "Label": "  ", "Rev_Web": "10"})
        assert result.is_empty
        assert result.record is None

    def test_no_columns_is_empty(self):
        assert transform_row({}).is_empty

    def test_unparsable_date_is_invalid(self):
        result = transform_row(_make_row(Date="31-2-2026"))
        assert result.is_invalid
        assert "31-2-2026" in result.reason

    def test_blank_date_with_label_is_invalid(self):
        assert transform_row(_make_row(Date="")).is_invalid

    def test_blank_label_becomes_unknown(self):
        m = transform_row(_make_row(Label="")).record
        assert m.label == UNKNOWN_LABEL

    def test_unparsable_number_counts_as_zero(self):
        m = transform_row(_make_row(Rev_App="n/a")).record
        assert m.revenue_app == 0.0
        assert m.total_revenue == 1000.0

    def test_missing_columns_count_as_zero(self):
        m = transform_row({"Date": "4-2-2026", "Label": "Brand A"}).record
        assert m.total_revenue == 0.0
        assert m.aov == 0.0
        assert m.mer == 0.0

    def test_legacy_click_headers(self):
        row = _make_row()
        del row["Conv_FB"]
        row["Clicks_FB"] = "7"
        assert transform_row(row).record.clicks_fb == 7

    def test_non_mapping_raises(self):
        with pytest.raises(TypeError):
            transform_row(["4-2-2026", "Brand A"])


# ---------------------------------------------------------------------------
# RowResult
# ---------------------------------------------------------------------------

class TestRowResult:
    def test_constructors(self):
        assert RowResult.valid("x").status is RowStatus.VALID
        assert RowResult.empty().status is RowStatus.EMPTY
        invalid = RowResult.invalid("bad")
        assert invalid.status is RowStatus.INVALID
        assert invalid.reason == "bad"


# ---------------------------------------------------------------------------
# normalize_month_key / normalize_mer_target
# ---------------------------------------------------------------------------

class TestNormalizeMonthKey:
    @pytest.mark.parametrize("raw, expected", [
        ("1-2025", "2025-01"),
        ("01-2025", "2025-01"),
        ("12/2025", "2025-12"),
        ("3.2025", "2025-03"),
        ("2025-3", "2025-03"),
        ("2025-03", "2025-03"),
        (" 1-2025 ", "2025-01"),
    ])
    def test_spellings(self, raw, expected):
        assert normalize_month_key(raw) == expected

    def test_month_out_of_range(self):
        assert normalize_month_key("13-2025") is None
        assert normalize_month_key("0-2025") is None

    def test_not_a_month(self):
        assert normalize_month_key("January 2025") is None
        assert normalize_month_key("") is None
        assert normalize_month_key(None) is None


class TestNormalizeMerTarget:
    def test_fraction_kept(self):
        assert normalize_mer_target(0.18) == 0.18

    def test_percentage_divided(self):
        assert normalize_mer_target(18) == pytest.approx(0.18)

    def test_missing_uses_default(self):
        assert normalize_mer_target(0) == 0.2
        assert normalize_mer_target(0, default=0.25) == 0.25


# ---------------------------------------------------------------------------
# transform_target_row
# ---------------------------------------------------------------------------

class TestTransformTargetRow:
    def test_valid_row(self):
        row = {"Month": "1-2025", "Label": "Brand A", "Rev_target": "50.000",
               "Orders_Target": "1.000", "MER_Target": "18"}
        t = transform_target_row(row).record
        assert t.month == "2025-01"
        assert t.label == "Brand A"
        assert t.revenue_target == 50000.0
        assert t.orders_target == 1000
        assert t.mer_target == pytest.approx(0.18)

    def test_header_variants(self):
        row = {"Maand": "2025-02", "Merk": "Brand B", "Target Revenue": "10,5"}
        t = transform_target_row(row).record
        assert t.month == "2025-02"
        assert t.label == "Brand B"
        assert t.revenue_target == 10.5

    def test_missing_mer_defaults(self):
        row = {"Month": "1-2025", "Label": "Brand A", "Revenue_Target": "100"}
        assert transform_target_row(row).record.mer_target == 0.2
        custom = transform_target_row(row, default_mer_target=0.3).record
        assert custom.mer_target == 0.3

    def test_fractional_mer_kept(self):
        row = {"Month": "1-2025", "Label": "A", "MER_Target": "0,15"}
        assert transform_target_row(row).record.mer_target == pytest.approx(0.15)

    def test_bad_month_is_invalid(self):
        result = transform_target_row({"Month": "Jan", "Label": "A"})
        assert result.is_invalid
        assert "Jan" in result.reason

    def test_blank_row_is_empty(self):
        assert transform_target_row({"Month": "", "Label": ""}).is_empty


# ---------------------------------------------------------------------------
# transform_event_row
# ---------------------------------------------------------------------------

class TestTransformEventRow:
    def test_valid_row(self):
        row = {"Date": "14-2-2026", "Title": "Valentine", "Type": "Marketing",
               "Description": "", "Label": ""}
        e = transform_event_row(row).record
        assert e.date == date(2026, 2, 14)
        assert e.title == "Valentine"
        assert e.event_type is EventType.MARKETING
        assert e.description is None
        assert e.label is None

    def test_scoped_event(self):
        row = {"Date": "14-2-2026", "Title": "Outage", "Type": "technical",
               "Description": "Checkout down", "Label": "Brand A"}
        e = transform_event_row(row).record
        assert e.event_type is EventType.TECHNICAL
        assert e.description == "Checkout down"
        assert e.label == "Brand A"

    def test_unknown_type_is_other(self):
        row = {"Date": "14-2-2026", "Title": "X", "Type": "weather"}
        assert transform_event_row(row).record.event_type is EventType.OTHER

    def test_lenient_date(self):
        row = {"Date": "31-4-2026", "Title": "Launch"}
        assert transform_event_row(row).record.date == date(2026, 5, 1)

    def test_missing_title_is_invalid(self):
        assert transform_event_row({"Date": "14-2-2026", "Title": ""}).is_invalid

    def test_bad_date_is_invalid(self):
        assert transform_event_row({"Date": "someday", "Title": "X"}).is_invalid

    def test_blank_row_is_empty(self):
        assert transform_event_row({"Date": "", "Title": ""}).is_empty
