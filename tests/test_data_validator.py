"""
tests/test_data_validator.py

Pytest unit tests for DataValidator.

Coverage
--------
- IQR outlier detection (and the four-value minimum)
- Completeness, empty fields and low-completeness warnings
- Invalid numbers/dates reported from coercion diagnostics
- Future and pre-1900 dates against a fixed "today"
- Negative quantities, identifier duplicates, case inconsistency
- Profit vs sales-minus-cost consistency
- Quality scores stay within 0-100
"""

from __future__ import annotations

from datetime import date

import pytest

from app.domain.imports import RowDiagnostic
from app.validators.data_validator import DataValidator, classify_pattern, iqr_outliers


@pytest.fixture()
def validator() -> DataValidator:
    return DataValidator(
        completeness_warning_ratio=0.8,
        case_inconsistency_ratio=0.1,
        profit_tolerance=0.01,
        max_issue_samples=100,
        today=date(2024, 6, 1),
    )


def _codes(issues) -> list[str]:
    return [issue.code for issue in issues]


# ---------------------------------------------------------------------------
# Outliers
# ---------------------------------------------------------------------------


class TestIqrOutliers:
    def test_flags_extreme_value(self) -> None:
        indexes, bounds = iqr_outliers([10, 12, 11, 9, 1000])

        assert indexes == [4]
        assert bounds is not None
        assert bounds[1] == pytest.approx(15.0)

    def test_needs_four_values(self) -> None:
        assert iqr_outliers([1, 2, 1000]) == ([], None)

    def test_sales_outliers_reported_as_warning(self, validator: DataValidator) -> None:
        records = [
            {"Date": date(2024, 1, day), "Sales": amount}
            for day, amount in zip(range(1, 6), [10.0, 12.0, 11.0, 9.0, 1000.0])
        ]

        report = validator.validate(records, ("Date", "Sales"))

        analysis = report.field_analysis["Sales"]
        assert [item.value for item in analysis.outliers] == [1000.0]
        assert analysis.outliers[0].row_number == 6
        assert "outliers" in _codes(report.warnings)
        assert report.errors == []

    def test_currency_text_column_is_checked_as_numbers(self, validator: DataValidator) -> None:
        prices = ["$3.10", "$3.20", "$3.00", "$3.10", "$999.00"]
        records = [
            {"Date": date(2024, 1, day), "Sales": 10.0, "Unit Price": price}
            for day, price in zip(range(1, 6), prices)
        ]

        report = validator.validate(records, ("Date", "Sales", "Unit Price"))

        analysis = report.field_analysis["Unit Price"]
        assert analysis.data_type == "currency"
        assert [item.value for item in analysis.outliers] == [999.0]
        assert analysis.outliers[0].row_number == 6
        assert "outliers" in _codes(analysis.issues)


# ---------------------------------------------------------------------------
# Completeness
# ---------------------------------------------------------------------------


class TestCompleteness:
    def test_complete_dataset_scores(self, validator: DataValidator) -> None:
        records = [
            {"Date": date(2024, 1, 5), "Sales": 100.0, "Customer": "Acme"},
            {"Date": date(2024, 1, 6), "Sales": 80.0, "Customer": "Beta"},
        ]

        report = validator.validate(records, ("Date", "Sales", "Customer"))

        assert report.quality.completeness == 100
        assert report.quality.consistency == 100
        assert report.quality.accuracy == 100
        assert report.quality.overall == 100
        assert report.field_analysis["Customer"].unique == 2

    def test_blank_numbers_count_as_empty(self, validator: DataValidator) -> None:
        records = [{"Date": date(2024, 1, day), "Sales": 0.0} for day in (1, 2)]
        diagnostics = [
            RowDiagnostic(row_number=2, code="blank_number", message="", column="Sales", value=""),
            RowDiagnostic(row_number=3, code="blank_number", message="", column="Sales", value=""),
        ]

        report = validator.validate(records, ("Date", "Sales"), diagnostics=diagnostics, row_numbers=(2, 3))

        assert report.field_analysis["Sales"].empty == 2
        assert "empty_field" in _codes(report.errors)

    def test_low_completeness_warning(self, validator: DataValidator) -> None:
        records = [
            {"Date": date(2024, 1, 1), "Sales": 1.0, "Driver": "Ann"},
            {"Date": date(2024, 1, 2), "Sales": 2.0, "Driver": ""},
            {"Date": date(2024, 1, 3), "Sales": 3.0, "Driver": ""},
        ]

        report = validator.validate(records, ("Date", "Sales", "Driver"))

        (issue,) = report.issues_for("Driver")
        assert issue.code == "low_completeness"
        assert issue.severity == "medium"

    def test_missing_required_headers(self, validator: DataValidator) -> None:
        report = validator.validate([{"Customer": "Acme"}], ("Customer",))

        missing = [issue.field for issue in report.errors if issue.code == "missing_required_field"]
        assert missing == ["Date", "Sales"]
        assert report.has_blocking_errors


# ---------------------------------------------------------------------------
# Type-specific checks
# ---------------------------------------------------------------------------


class TestTypeChecks:
    def test_invalid_number_from_diagnostics(self, validator: DataValidator) -> None:
        records = [
            {"Date": date(2024, 1, 5), "Sales": 100.0},
            {"Date": date(2024, 1, 6), "Sales": 0.0},
        ]
        diagnostics = [
            RowDiagnostic(row_number=3, code="invalid_number", message="", column="Sales", value="bad"),
        ]

        report = validator.validate(records, ("Date", "Sales"), diagnostics=diagnostics, row_numbers=(2, 3))

        (issue,) = [item for item in report.errors if item.code == "invalid_number"]
        assert issue.field == "Sales"
        assert issue.count == 1
        assert issue.samples == ("bad",)

    def test_invalid_date_from_diagnostics(self, validator: DataValidator) -> None:
        records = [{"Date": None, "Sales": 1.0}, {"Date": date(2024, 1, 6), "Sales": 2.0}]
        diagnostics = [
            RowDiagnostic(row_number=2, code="invalid_date", message="", column="Date", value="13/45/2024"),
        ]

        report = validator.validate(records, ("Date", "Sales"), diagnostics=diagnostics, row_numbers=(2, 3))

        assert "invalid_date" in _codes(report.errors)

    def test_future_and_ancient_dates(self, validator: DataValidator) -> None:
        records = [
            {"Date": date(2027, 3, 1), "Sales": 1.0},
            {"Date": date(1850, 3, 1), "Sales": 2.0},
            {"Date": date(2025, 12, 31), "Sales": 3.0},
        ]

        report = validator.validate(records, ("Date", "Sales"))

        warnings = {issue.code: issue for issue in report.warnings}
        assert warnings["future_date"].samples == ("2027-03-01",)
        assert warnings["ancient_date"].samples == ("1850-03-01",)

    def test_negative_quantities(self, validator: DataValidator) -> None:
        records = [{"Date": date(2024, 1, 1), "Sales": 1.0, "Gallon Qty": value} for value in (5.0, -2.0)]

        report = validator.validate(records, ("Date", "Sales", "Gallon Qty"))

        assert "negative_values" in _codes(report.issues_for("Gallon Qty"))

    def test_identifier_duplicates(self, validator: DataValidator) -> None:
        records = [{"Date": date(2024, 1, 1), "Sales": 1.0, "Invoice ID": value} for value in ("A1", "A1", "B2")]

        report = validator.validate(records, ("Date", "Sales", "Invoice ID"))

        (issue,) = report.issues_for("Invoice ID")
        assert issue.code == "duplicate_values"
        assert issue.count == 1

    def test_case_inconsistency_is_a_suggestion(self, validator: DataValidator) -> None:
        records = [
            {"Date": date(2024, 1, 1), "Sales": 1.0, "Customer": name}
            for name in ("Acme", "acme", "Beta", "Gamma")
        ]

        report = validator.validate(records, ("Date", "Sales", "Customer"))

        assert _codes(report.suggestions) == ["case_inconsistency"]
        assert report.field_analysis["Customer"].patterns == {"title_case": 3, "lowercase": 1}


# ---------------------------------------------------------------------------
# Cross-record rules and scoring
# ---------------------------------------------------------------------------


class TestCrossRecord:
    def test_profit_mismatch_per_row(self, validator: DataValidator) -> None:
        headers = ("Date", "Sales", "Actual Profit By Item", "Actual Cost by item")
        records = [
            {"Date": date(2024, 1, 1), "Sales": 100.0, "Actual Profit By Item": 20.0, "Actual Cost by item": 80.0},
            {"Date": date(2024, 1, 2), "Sales": 100.0, "Actual Profit By Item": 50.0, "Actual Cost by item": 80.0},
        ]

        report = validator.validate(records, headers)

        mismatches = [issue for issue in report.warnings if issue.code == "profit_mismatch"]
        assert [issue.row_number for issue in mismatches] == [3]

    def test_profit_check_skips_unparseable_cells(self, validator: DataValidator) -> None:
        headers = ("Date", "Sales", "Gallon Qty", "Actual Profit By Item", "Actual Cost by item")
        records = [
            {
                "Date": date(2024, 1, 1),
                "Sales": 100.0,
                "Gallon Qty": 5.0,
                "Actual Profit By Item": 0.0,
                "Actual Cost by item": 60.0,
            },
        ]
        diagnostics = [
            RowDiagnostic(
                row_number=2,
                code="invalid_number",
                message="",
                column="Actual Profit By Item",
                value="bad",
            ),
        ]

        report = validator.validate(records, headers, diagnostics=diagnostics, row_numbers=(2,))

        assert "profit_mismatch" not in _codes(report.warnings)
        assert "invalid_number" in _codes(report.errors)

    def test_profit_mismatch_samples_are_capped(self) -> None:
        validator = DataValidator(max_issue_samples=2, today=date(2024, 6, 1))
        headers = ("Date", "Sales", "Actual Profit By Item", "Actual Cost by item")
        records = [
            {"Date": date(2024, 1, 1), "Sales": 10.0, "Actual Profit By Item": 9.0, "Actual Cost by item": 5.0}
            for _ in range(5)
        ]

        report = validator.validate(records, headers)

        assert len([issue for issue in report.warnings if issue.code == "profit_mismatch"]) == 2

    def test_scores_are_bounded(self, validator: DataValidator) -> None:
        records = [{"Date": None, "Sales": None, "Gallon Qty": None}]

        report = validator.validate(records, ("Date", "Sales", "Gallon Qty"))

        for score in (
            report.quality.completeness,
            report.quality.consistency,
            report.quality.accuracy,
            report.quality.overall,
        ):
            assert 0 <= score <= 100

    def test_no_records(self, validator: DataValidator) -> None:
        report = validator.validate([], ("Date", "Sales"))

        assert report.errors == []
        assert report.quality.overall == 0


class TestClassifyPattern:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("123", "numeric"),
            ("ops@example.com", "email"),
            ("(555) 123-4567", "phone"),
            ("ACME", "uppercase"),
            ("acme", "lowercase"),
            ("Acme Fuel", "title_case"),
            ("aCME", "mixed"),
        ],
    )
    def test_patterns(self, value: str, expected: str) -> None:
        assert classify_pattern(value) == expected
