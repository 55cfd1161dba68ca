"""Tests for recurring expense rules (pure functions)."""
import pytest
from datetime import date
from decimal import Decimal

from app.domain.recurring_expense import (
    anchor_date_in_month, clamp_amount, is_expired, is_occurrence_month,
    month_bounds, normalize_frequency, period_key, validate_anchor_day,
)


class TestFrequency:
    def test_empty_defaults_to_monthly(self):
        assert normalize_frequency(None) == "monthly"
        assert normalize_frequency("") == "monthly"

    def test_case_insensitive(self):
        assert normalize_frequency(" Quarterly ") == "quarterly"

    def test_unknown_raises(self):
        with pytest.raises(ValueError):
            normalize_frequency("weekly")

    @pytest.mark.parametrize("month", range(1, 13))
    def test_monthly_every_month(self, month):
        assert is_occurrence_month("monthly", month) is True

    def test_quarterly_months(self):
        valid = [m for m in range(1, 13) if is_occurrence_month("quarterly", m)]
        assert valid == [1, 4, 7, 10]

    def test_semiannual_months(self):
        valid = [m for m in range(1, 13) if is_occurrence_month("semiannual", m)]
        assert valid == [1, 7]

    def test_annual_only_january(self):
        valid = [m for m in range(1, 13) if is_occurrence_month("annual", m)]
        assert valid == [1]


class TestExpiry:
    def test_no_end_date(self):
        assert is_expired(None, date(2026, 4, 15)) is False

    def test_end_date_is_inclusive(self):
        assert is_expired(date(2026, 4, 15), date(2026, 4, 15)) is False

    def test_past_end_date(self):
        assert is_expired(date(2026, 4, 14), date(2026, 4, 15)) is True


class TestAmount:
    def test_negative_clamped_to_zero(self):
        assert clamp_amount(-5) == Decimal("0")

    def test_none_is_zero(self):
        assert clamp_amount(None) == Decimal("0")

    def test_positive_kept(self):
        assert clamp_amount(Decimal("12.50")) == Decimal("12.50")


class TestPeriods:
    def test_month_bounds_february_leap_year(self):
        assert month_bounds(date(2028, 2, 10)) == (date(2028, 2, 1), date(2028, 2, 29))

    def test_period_key_zero_padded(self):
        assert period_key(date(2026, 4, 3)) == "2026-04"

    def test_anchor_date(self):
        assert anchor_date_in_month(date(2026, 4, 20), 5) == date(2026, 4, 5)

    def test_anchor_date_clipped_to_month_end(self):
        assert anchor_date_in_month(date(2026, 4, 30), 31) == date(2026, 4, 30)

    @pytest.mark.parametrize("day", [None, 0, 32])
    def test_invalid_anchor_day(self, day):
        with pytest.raises(ValueError):
            validate_anchor_day(day)
