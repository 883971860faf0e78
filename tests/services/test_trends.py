from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest

from exchange_rates.errors import (
    CurrencyNotFoundError,
    InvalidPeriodFormatError,
    TrendDataNotFoundError,
)
from exchange_rates.services import trends as trends_module
from exchange_rates.services.trends import TrendsEngine, parse_period, percent_change
from tests.factories import make_record
from tests.fakes import InMemoryRateHistory, StaticRegistry

NOW = datetime(2026, 3, 31, 12, 0, tzinfo=UTC)


def build_engine(records=(), codes=("USD", "EUR", "GBP")):
    history = InMemoryRateHistory(records)
    return TrendsEngine(history, StaticRegistry(codes), clock=lambda: NOW), history


@pytest.mark.parametrize(
    ("value", "amount", "unit"),
    [("24H", 24, "H"), ("7D", 7, "D"), ("1M", 1, "M"), ("2Y", 2, "Y"), ("007D", 7, "D")],
)
def test_parse_period_accepts_grammar(value, amount, unit):
    period = parse_period(value)

    assert (period.amount, period.unit) == (amount, unit)


@pytest.mark.parametrize(
    "value",
    ["", "H", "24", "24h", "1W", "-1D", "0D", "1.5D", " 1D", "24H\n", "\u0662\u0664H", None],
)
def test_parse_period_rejects_invalid_strings(value):
    with pytest.raises(InvalidPeriodFormatError) as exc_info:
        parse_period(value)

    assert "H (hours), D (days), M (months), or Y (years)" in str(exc_info.value)


def test_twenty_four_hour_trend_example():
    records = [
        make_record(rate="1.00", observed_at=NOW - timedelta(hours=20)),
        make_record(rate="0.99", observed_at=NOW - timedelta(hours=10)),
        make_record(rate="0.98", observed_at=NOW - timedelta(hours=1)),
    ]
    engine, _ = build_engine(records)

    trend = engine.calculate_trend("USD", "EUR", "24H")

    assert trend.start_rate == Decimal("1.00")
    assert trend.end_rate == Decimal("0.98")
    assert trend.change == Decimal("-0.02")
    assert trend.change_percent == Decimal("-2.00")
    assert trend.start_time == NOW - timedelta(hours=20)
    assert trend.end_time == NOW - timedelta(hours=1)
    assert [point.rate for point in trend.data_points] == [
        Decimal("1.00"),
        Decimal("0.99"),
        Decimal("0.98"),
    ]


def test_records_outside_window_are_ignored():
    records = [
        make_record(rate="0.50", observed_at=NOW - timedelta(hours=30)),
        make_record(rate="1.00", observed_at=NOW - timedelta(hours=2)),
        make_record(rate="1.10", observed_at=NOW - timedelta(hours=1)),
    ]
    engine, _ = build_engine(records)

    trend = engine.calculate_trend("USD", "EUR", "24H")

    assert trend.start_rate == Decimal("1.00")
    assert trend.change_percent == Decimal("10.00")
    assert len(trend.data_points) == 2


def test_single_record_has_zero_change():
    engine, _ = build_engine([make_record(rate="0.91", observed_at=NOW - timedelta(days=1))])

    trend = engine.calculate_trend("USD", "EUR", "7D")

    assert trend.change == Decimal("0")
    assert trend.change_percent == Decimal("0.00")
    assert trend.start_time == trend.end_time


def test_month_window_is_calendar_aware():
    # 31 March minus one month clamps to 28 February.
    inside = make_record(rate="1.00", observed_at=datetime(2026, 2, 28, 12, 0, tzinfo=UTC))
    outside = make_record(rate="2.00", observed_at=datetime(2026, 2, 28, 11, 59, tzinfo=UTC))
    engine, _ = build_engine([outside, inside])

    trend = engine.calculate_trend("USD", "EUR", "1M")

    assert trend.start_rate == Decimal("1.00")
    assert len(trend.data_points) == 1


def test_year_window_goes_back_twelve_months():
    inside = make_record(rate="1.00", observed_at=datetime(2025, 3, 31, 12, 0, tzinfo=UTC))
    outside = make_record(rate="2.00", observed_at=datetime(2025, 3, 30, tzinfo=UTC))
    engine, _ = build_engine([outside, inside])

    trend = engine.calculate_trend("USD", "EUR", "1Y")

    assert [point.rate for point in trend.data_points] == [Decimal("1.00")]


def test_empty_window_raises_trend_data_not_found():
    engine, _ = build_engine()

    with pytest.raises(TrendDataNotFoundError) as exc_info:
        engine.calculate_trend("USD", "EUR", "24H")

    assert "USD" in str(exc_info.value)
    assert "24H" in str(exc_info.value)


def test_unknown_currency_rejected_before_history_access():
    engine, history = build_engine()

    with patch.object(history, "query_range") as query_range:
        with pytest.raises(CurrencyNotFoundError):
            engine.calculate_trend("USD", "XYZ", "24H")

    query_range.assert_not_called()


def test_invalid_period_rejected_before_history_access():
    engine, history = build_engine()

    with patch.object(history, "query_range") as query_range:
        with pytest.raises(InvalidPeriodFormatError):
            engine.calculate_trend("USD", "EUR", "1W")

    query_range.assert_not_called()


def test_zero_start_rate_leaves_percent_undefined():
    records = [
        make_record(rate="0", observed_at=NOW - timedelta(hours=3)),
        make_record(rate="1.5", observed_at=NOW - timedelta(hours=1)),
    ]
    engine, _ = build_engine(records)

    with patch.object(trends_module.logger, "warning") as log_warning:
        trend = engine.calculate_trend("USD", "EUR", "24H")

    assert trend.change_percent is None
    assert trend.change == Decimal("1.5")
    log_warning.assert_called_once()


def test_percent_change_rounds_ratio_before_scaling():
    # 1/3 -> 0.3333 -> 33.33
    assert percent_change(Decimal("3"), Decimal("1")) == Decimal("33.33")
    # 0.000050 ratio rounds half up to 0.0001 -> 0.01%
    assert percent_change(Decimal("1"), Decimal("0.00005")) == Decimal("0.01")


@pytest.mark.parametrize("period", ["3000Y", "30000M", "1000000D", "99999999999H"])
def test_period_reaching_before_year_one_is_rejected(period):
    engine, history = build_engine([make_record(observed_at=NOW)])

    with patch.object(history, "query_range") as query_range:
        with pytest.raises(InvalidPeriodFormatError, match="no earlier than the year 1"):
            engine.calculate_trend("USD", "EUR", period)

    query_range.assert_not_called()


def test_period_with_too_many_digits_is_rejected():
    with pytest.raises(InvalidPeriodFormatError):
        parse_period("9" * 5000 + "D")
