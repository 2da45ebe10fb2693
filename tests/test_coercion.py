"""
tests/test_coercion.py

Pytest unit tests for the value coercion helpers.
"""

from __future__ import annotations

import math
from datetime import date

import pytest

from app.transformers.coercion import (
    is_currency_like,
    is_date_like,
    is_number_like,
    parse_date,
    parse_number,
)


class TestParseNumber:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("$1,234.56", 1234.56),
            ("  42 ", 42.0),
            ("-7.5", -7.5),
            ("(12.00)", -12.0),
            ("€ 3", 3.0),
            ("1e3", 1000.0),
        ],
    )
    def test_parses_numeric_text(self, raw: str, expected: float) -> None:
        assert parse_number(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", ["", "null", "undefined", "NULL", "abc", "nan", "inf", None])
    def test_unparseable_or_blank_returns_none(self, raw) -> None:
        assert parse_number(raw) is None

    def test_passes_through_numbers(self) -> None:
        assert parse_number(5) == 5.0
        assert parse_number(float("nan")) is None
        assert parse_number(True) is None

    def test_never_returns_nan(self) -> None:
        for raw in ("NaN", "Infinity", "-inf"):
            value = parse_number(raw)
            assert value is None or not math.isnan(value)


class TestParseDate:
    def test_us_format(self) -> None:
        assert parse_date("01/15/2024") == date(2024, 1, 15)

    def test_iso_and_timestamps(self) -> None:
        assert parse_date("2024-01-05") == date(2024, 1, 5)
        assert parse_date("2024-01-05T10:30:00Z") == date(2024, 1, 5)
        assert parse_date("2024-01-05 10:30:00") == date(2024, 1, 5)

    def test_not_a_date(self) -> None:
        assert parse_date("not-a-date") is None
        assert parse_date("") is None
        assert parse_date(None) is None

    def test_generic_parsing_rejects_out_of_window_years(self) -> None:
        assert parse_date("2150-03-01") is None
        assert parse_date("1850-03-01") is None

    def test_explicit_us_format_accepts_any_year(self) -> None:
        assert parse_date("03/01/1850") == date(1850, 3, 1)

    def test_invalid_calendar_day(self) -> None:
        assert parse_date("02/30/2024") is None

    def test_date_objects_pass_through(self) -> None:
        assert parse_date(date(2024, 2, 1)) == date(2024, 2, 1)


class TestTypePredicates:
    def test_currency(self) -> None:
        assert is_currency_like("$1,000")
        assert is_currency_like("-12.50")
        assert is_currency_like("($5.00)")
        assert not is_currency_like("12 apples")
        assert not is_currency_like("")

    def test_number(self) -> None:
        assert is_number_like("3.14")
        assert not is_number_like("$3.14")
        assert not is_number_like("inf")

    def test_date(self) -> None:
        assert is_date_like("Jan 5, 2024")
        assert not is_date_like("tomorrow")
