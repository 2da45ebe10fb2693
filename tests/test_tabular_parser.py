"""
tests/test_tabular_parser.py

Pytest unit tests for TabularParser.

Coverage
--------
- Header plus data rows, blank lines skipped, trimmed cells
- Quoted fields and doubled quotes
- Short/long rows skipped with a row_length_mismatch diagnostic
- ParseError when fewer than two non-blank lines exist
- Extension based format detection
- Workbook sheets decoded through pandas/openpyxl
"""

from __future__ import annotations

import io

import pytest
from openpyxl import Workbook

from app.parsers.tabular_parser import (
    FORMAT_DELIMITED,
    FORMAT_WORKBOOK,
    ParseError,
    TabularParser,
    UnsupportedFormatError,
    detect_format,
)


@pytest.fixture()
def parser() -> TabularParser:
    return TabularParser()


def _workbook_bytes(sheets: dict[str, list[list[str]]]) -> bytes:
    workbook = Workbook()
    workbook.remove(workbook.active)
    for title, rows in sheets.items():
        sheet = workbook.create_sheet(title=title)
        for row in rows:
            sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Delimited text
# ---------------------------------------------------------------------------


class TestParseText:
    def test_preserves_data_rows(self, parser: TabularParser) -> None:
        table = parser.parse_text("Date,Sales\n2024-01-05,100\n2024-01-06,200\n")

        assert table.headers == ("Date", "Sales")
        assert table.rows == [("2024-01-05", "100"), ("2024-01-06", "200")]
        assert table.diagnostics == []
        assert table.row_numbers == (2, 3)

    def test_blank_lines_are_skipped(self, parser: TabularParser) -> None:
        table = parser.parse_text("Date,Sales\n\n2024-01-05,100\n   \n2024-01-06,200")

        assert len(table.rows) == 2
        assert table.row_numbers == (3, 5)

    def test_cells_are_trimmed(self, parser: TabularParser) -> None:
        table = parser.parse_text(" Date , Sales \n 2024-01-05 ,  100 ")

        assert table.headers == ("Date", "Sales")
        assert table.rows == [("2024-01-05", "100")]

    def test_quoted_fields_keep_delimiters(self, parser: TabularParser) -> None:
        table = parser.parse_text('Customer,Sales\n"Acme, Inc.",100\n"Acme ""North""",50')

        assert table.rows[0] == ("Acme, Inc.", "100")
        assert table.rows[1] == ('Acme "North"', "50")

    def test_row_length_mismatch_is_skipped(self, parser: TabularParser) -> None:
        table = parser.parse_text("Date,Sales,Gallon Qty\n2024-01-05,100,50\n2024-01-06,200\n")

        assert table.rows == [("2024-01-05", "100", "50")]
        (diagnostic,) = table.diagnostics
        assert diagnostic.code == "row_length_mismatch"
        assert diagnostic.row_number == 3
        assert table.skipped_rows == 1

    def test_blank_header_cells_get_placeholder_names(self, parser: TabularParser) -> None:
        table = parser.parse_text("Date,,Sales\n2024-01-05,x,100")

        assert table.headers == ("Date", "Column 2", "Sales")

    @pytest.mark.parametrize("text", ["", "\n\n", "Date,Sales\n", "   \nDate,Sales\n  \n"])
    def test_needs_header_and_one_data_row(self, parser: TabularParser, text: str) -> None:
        with pytest.raises(ParseError) as exc_info:
            parser.parse_text(text)

        assert "header" in exc_info.value.to_dict()["message"]

    def test_tab_delimiter(self) -> None:
        parser = TabularParser(delimiter="\t")

        table = parser.parse_text("Date\tSales\n2024-01-05\t1,000")

        assert table.rows == [("2024-01-05", "1,000")]

    def test_delimiter_must_be_single_character(self) -> None:
        with pytest.raises(ValueError):
            TabularParser(delimiter="||")


class TestParseBytes:
    def test_utf8_bom_is_stripped(self, parser: TabularParser) -> None:
        content = "\ufeffDate,Sales\n2024-01-05,100".encode("utf-8")

        table = parser.parse(content, format_hint=FORMAT_DELIMITED)

        assert table.headers == ("Date", "Sales")

    def test_non_utf8_raises_parse_error(self, parser: TabularParser) -> None:
        with pytest.raises(ParseError):
            parser.parse(b"Date,Sales\n\xff\xfe,1", format_hint=FORMAT_DELIMITED)

    def test_unknown_format_hint(self, parser: TabularParser) -> None:
        with pytest.raises(UnsupportedFormatError):
            parser.parse("a,b\n1,2", format_hint="json")


# ---------------------------------------------------------------------------
# Format detection
# ---------------------------------------------------------------------------


class TestDetectFormat:
    @pytest.mark.parametrize(
        ("filename", "expected"),
        [
            ("sales.csv", (FORMAT_DELIMITED, ",")),
            ("SALES.TSV", (FORMAT_DELIMITED, "\t")),
            ("report.xlsx", (FORMAT_WORKBOOK, None)),
        ],
    )
    def test_known_extensions(self, filename: str, expected: tuple[str, str | None]) -> None:
        assert detect_format(filename) == expected

    def test_unknown_extension(self) -> None:
        with pytest.raises(UnsupportedFormatError):
            detect_format("sales.pdf")


# ---------------------------------------------------------------------------
# Workbooks
# ---------------------------------------------------------------------------


class TestWorkbook:
    def test_first_sheet_by_default(self, parser: TabularParser) -> None:
        content = _workbook_bytes(
            {
                "January": [["Date", "Sales"], ["2024-01-05", "100"], ["2024-01-06", "200"]],
                "February": [["Date", "Sales"], ["2024-02-01", "300"]],
            }
        )

        table = parser.parse(content, format_hint=FORMAT_WORKBOOK)

        assert table.headers == ("Date", "Sales")
        assert table.rows == [("2024-01-05", "100"), ("2024-01-06", "200")]
        assert table.sheet_names == ("January", "February")

    def test_named_sheet(self, parser: TabularParser) -> None:
        content = _workbook_bytes(
            {
                "January": [["Date", "Sales"], ["2024-01-05", "100"]],
                "February": [["Date", "Sales"], ["2024-02-01", "300"]],
            }
        )

        table = parser.parse(content, format_hint=FORMAT_WORKBOOK, sheet_name="February")

        assert table.rows == [("2024-02-01", "300")]

    def test_list_sheets(self, parser: TabularParser) -> None:
        content = _workbook_bytes({"Only": [["A"], ["1"]]})

        assert parser.list_sheets(content) == ("Only",)

    def test_unreadable_workbook(self, parser: TabularParser) -> None:
        with pytest.raises(UnsupportedFormatError):
            parser.parse(b"not a workbook", format_hint=FORMAT_WORKBOOK)
