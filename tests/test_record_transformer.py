"""
tests/test_record_transformer.py

Pytest unit tests for RecordTransformer.

Coverage
--------
- Mapped columns renamed and coerced; unmapped columns kept as text
- Invalid numbers read as 0 (or None when strict) with diagnostics
- Blank numeric cells read as 0; invalid dates left empty
- Fully blank rows dropped
- Derived ProfitMargin and RevenuePerGallon
- Name collisions resolved with numbered suffixes
"""

from __future__ import annotations

from datetime import date

import pytest

from app.domain.imports import FieldMapping, ParsedTable
from app.transformers.record_transformer import RecordTransformer, effective_headers


def _table(headers, rows) -> ParsedTable:
    return ParsedTable(headers=tuple(headers), rows=[tuple(row) for row in rows])


def _mapping(headers, source_to_field) -> FieldMapping:
    return FieldMapping(source_to_field=dict(source_to_field), source_headers=tuple(headers))


@pytest.fixture()
def transformer() -> RecordTransformer:
    return RecordTransformer(strict_numbers=False)


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


class TestTransform:
    def test_scenario_rows(self, transformer: RecordTransformer) -> None:
        headers = ["Txn Date", "Amt", "Gal"]
        table = _table(headers, [["2024-01-05", "$100.00", "50"], ["2024-01-06", "bad", "20"]])
        mapping = _mapping(headers, {"Txn Date": "Date", "Amt": "Sales", "Gal": "Gallon Qty"})

        result = transformer.transform(table, mapping)

        assert result.headers == ("Date", "Sales", "Gallon Qty", "RevenuePerGallon")
        first, second = result.records
        assert first["Date"] == date(2024, 1, 5)
        assert first["Sales"] == 100.0
        assert first["Gallon Qty"] == 50.0
        assert first["RevenuePerGallon"] == pytest.approx(2.0)
        assert second["Sales"] == 0.0
        (diagnostic,) = result.diagnostics
        assert diagnostic.code == "invalid_number"
        assert diagnostic.column == "Sales"
        assert diagnostic.row_number == 3

    def test_strict_numbers_leave_invalid_cells_empty(self) -> None:
        transformer = RecordTransformer(strict_numbers=True)
        headers = ["Sales"]
        result = transformer.transform(_table(headers, [["oops"]]), _mapping(headers, {"Sales": "Sales"}))

        assert result.records[0]["Sales"] is None
        assert result.diagnostics[0].code == "invalid_number"

    @pytest.mark.parametrize("cell", ["", "null", "undefined"])
    def test_blank_numbers_read_as_zero(self, transformer: RecordTransformer, cell: str) -> None:
        headers = ["Date", "Gallon Qty"]
        table = _table(headers, [["2024-01-05", cell]])

        result = transformer.transform(table, _mapping(headers, {"Date": "Date", "Gallon Qty": "Gallon Qty"}))

        assert result.records[0]["Gallon Qty"] == 0.0
        assert [item.code for item in result.diagnostics] == ["blank_number"]

    def test_invalid_date_left_empty(self, transformer: RecordTransformer) -> None:
        headers = ["Date", "Sales"]
        table = _table(headers, [["not-a-date", "5"], ["", "6"]])

        result = transformer.transform(table, _mapping(headers, {"Date": "Date", "Sales": "Sales"}))

        assert result.records[0]["Date"] is None
        assert result.records[1]["Date"] is None
        assert [item.code for item in result.diagnostics] == ["invalid_date"]

    def test_unmapped_columns_pass_through_as_text(self, transformer: RecordTransformer) -> None:
        headers = ["Sales", "Notes", "Ticket"]
        table = _table(headers, [["10", "  rush order ", "00123"]])

        result = transformer.transform(table, _mapping(headers, {"Sales": "Sales"}))

        record = result.records[0]
        assert record["Notes"] == "rush order"
        assert record["Ticket"] == "00123"

    def test_blank_rows_dropped(self, transformer: RecordTransformer) -> None:
        headers = ["Date", "Sales"]
        table = _table(headers, [["2024-01-05", "1"], ["", "  "], ["2024-01-06", "2"]])

        result = transformer.transform(table, _mapping(headers, {"Date": "Date", "Sales": "Sales"}))

        assert len(result.records) == 2
        assert result.dropped_rows == 1
        assert result.row_numbers == (2, 4)

    def test_numeric_strings_with_commas(self, transformer: RecordTransformer) -> None:
        headers = ["Sales"]
        result = transformer.transform(_table(headers, [["$1,234.56"]]), _mapping(headers, {"Sales": "Sales"}))

        assert result.records[0]["Sales"] == pytest.approx(1234.56)


# ---------------------------------------------------------------------------
# Derived fields
# ---------------------------------------------------------------------------


class TestDerivedFields:
    def test_profit_margin_and_revenue_per_gallon(self, transformer: RecordTransformer) -> None:
        headers = ["Sales", "Gallon Qty", "Profit"]
        table = _table(headers, [["200", "50", "30"]])
        mapping = _mapping(
            headers,
            {"Sales": "Sales", "Gallon Qty": "Gallon Qty", "Profit": "Actual Profit By Item"},
        )

        record = transformer.transform(table, mapping).records[0]

        assert record["ProfitMargin"] == pytest.approx(15.0)
        assert record["RevenuePerGallon"] == pytest.approx(4.0)

    def test_zero_denominator_yields_none(self, transformer: RecordTransformer) -> None:
        headers = ["Sales", "Gallon Qty"]
        table = _table(headers, [["0", "0"]])

        record = transformer.transform(table, _mapping(headers, {"Sales": "Sales", "Gallon Qty": "Gallon Qty"})).records[0]

        assert record["RevenuePerGallon"] is None

    def test_not_derived_without_inputs(self, transformer: RecordTransformer) -> None:
        headers = ["Sales"]
        result = transformer.transform(_table(headers, [["5"]]), _mapping(headers, {"Sales": "Sales"}))

        assert result.headers == ("Sales",)

    def test_derive_helper(self) -> None:
        assert RecordTransformer.derive(10.0, 4.0) == 2.5
        assert RecordTransformer.derive(None, 4.0) is None
        assert RecordTransformer.derive(1.0, 0.0) is None


# ---------------------------------------------------------------------------
# Header naming
# ---------------------------------------------------------------------------


class TestEffectiveHeaders:
    def test_mapped_column_claims_semantic_name(self) -> None:
        headers = ("Sales", "Net", "Date")
        mapping = _mapping(headers, {"Net": "Sales", "Date": "Date"})

        assert effective_headers(headers, mapping) == ("Sales (2)", "Sales", "Date")

    def test_duplicate_source_headers(self) -> None:
        headers = ("Amount", "Amount")
        mapping = _mapping(headers, {"Amount": "Sales"})

        assert effective_headers(headers, mapping) == ("Sales", "Amount")
