"""
tests/test_export_service.py

Pytest unit tests for ExportService.
"""

from __future__ import annotations

from datetime import date, datetime

import pytest

from app.domain.dataset import StaticRecordSource
from app.services.export_service import ExportService, format_value


@pytest.fixture()
def exporter() -> ExportService:
    return ExportService(delimiter=",")


class TestFormatValue:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, ""),
            (date(2024, 1, 5), "2024-01-05"),
            (datetime(2024, 1, 5, 13, 30), "2024-01-05"),
            (100.0, "100"),
            (12.5, "12.5"),
            (7, "7"),
            ("Acme", "Acme"),
        ],
    )
    def test_display_strings(self, value, expected: str) -> None:
        assert format_value(value) == expected


class TestExport:
    def test_header_then_rows(self, exporter: ExportService) -> None:
        source = StaticRecordSource(
            records=(
                {"Date": date(2024, 1, 5), "Sales": 100.0, "Customer": "Acme"},
                {"Date": None, "Sales": 12.5, "Customer": ""},
            )
        )

        text = exporter.to_delimited(source, headers=("Date", "Sales", "Customer"))

        assert text == "Date,Sales,Customer\r\n2024-01-05,100,Acme\r\n,12.5,\r\n"

    def test_quotes_delimiters_and_quotes(self, exporter: ExportService) -> None:
        source = StaticRecordSource(records=({"Customer": 'Acme, "North"', "Sales": 1.0},))

        text = exporter.to_delimited(source)

        assert text.splitlines()[1] == '"Acme, ""North""",1'

    def test_headers_keep_order_and_extra_keys_follow(self, exporter: ExportService) -> None:
        source = StaticRecordSource(records=({"Sales": 1.0, "Date": date(2024, 1, 1), "Notes": "x"},))

        result = exporter.collect(source, headers=("Date", "Sales"))

        assert result.fields == ["Date", "Sales", "Notes"]
        assert result.rows == [{"Date": "2024-01-01", "Sales": "1", "Notes": "x"}]

    def test_iter_lines_streams_one_line_per_row(self, exporter: ExportService) -> None:
        source = StaticRecordSource(records=({"Sales": 1.0}, {"Sales": 2.0}))

        lines = list(exporter.iter_lines(exporter.collect(source)))

        assert lines == ["Sales\r\n", "1\r\n", "2\r\n"]

    def test_tab_delimiter(self) -> None:
        exporter = ExportService(delimiter="\t")
        source = StaticRecordSource(records=({"Customer": "Acme, Inc.", "Sales": 3.0},))

        assert exporter.to_delimited(source) == "Customer\tSales\r\nAcme, Inc.\t3\r\n"
