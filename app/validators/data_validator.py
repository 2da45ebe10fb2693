"""
app/validators/data_validator.py

Field-level and cross-record quality checks over processed records.

Findings are collected into a :class:`ValidationReport` and never raised:
high severity issues land in ``errors``, medium in ``warnings`` and low in
``suggestions``.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from datetime import date
from typing import Any, Iterable, Sequence

import numpy as np

from app.config import get_import_settings
from app.domain.dataset import ProcessedRecord
from app.domain.fields import (
    DATE_FIELDS,
    FIELD_COST,
    FIELD_DATE,
    FIELD_PROFIT,
    FIELD_SALES,
    NUMERIC_FIELDS,
    NUMERIC_TYPES,
    TYPE_CURRENCY,
    TYPE_DATE,
    TYPE_NUMBER,
    TYPE_TEXT,
    TYPE_UNKNOWN,
)
from app.domain.imports import RowDiagnostic
from app.domain.validation import (
    SEVERITY_HIGH,
    SEVERITY_LOW,
    SEVERITY_MEDIUM,
    FieldAnalysis,
    Outlier,
    QualityScores,
    ValidationIssue,
    ValidationReport,
)
from app.transformers.coercion import is_currency_like, is_number_like, parse_date, parse_number
from app.transformers.record_transformer import DIAG_BLANK_NUMBER, DIAG_INVALID_DATE, DIAG_INVALID_NUMBER

logger = logging.getLogger(__name__)

IDENTIFIER_KEYWORDS: tuple[str, ...] = ("id", "key", "number", "code")
FINANCIAL_KEYWORDS: tuple[str, ...] = ("sales", "cost", "profit", "price", "amount", "revenue")
NON_NEGATIVE_KEYWORDS: tuple[str, ...] = ("sales", "quantity", "qty", "gallon", "amount")
NAME_LIKE_KEYWORDS: tuple[str, ...] = ("name", "customer", "client", "driver", "operator")

VALIDATION_REQUIRED_FIELDS: tuple[str, ...] = (FIELD_DATE, FIELD_SALES)

MIN_OUTLIER_VALUES = 4
IQR_MULTIPLIER = 1.5
PATTERN_LIMIT = 5
SAMPLE_LIMIT = 5

PATTERN_NUMERIC = "numeric"
PATTERN_EMAIL = "email"
PATTERN_PHONE = "phone"
PATTERN_UPPERCASE = "uppercase"
PATTERN_LOWERCASE = "lowercase"
PATTERN_TITLE = "title_case"
PATTERN_MIXED = "mixed"

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")
_PHONE_RE = re.compile(r"^\+?[\d\s().-]{7,}$")

_CELL_EMPTY = "empty"
_CELL_INVALID = "invalid"
_CELL_VALUE = "value"


def _contains_any(name: str, keywords: Iterable[str]) -> bool:
    lowered = name.lower()
    return any(keyword in lowered for keyword in keywords)


def classify_pattern(value: str) -> str:
    """
    Bucket a text value into a coarse shape used for pattern histograms.
    """

    if is_number_like(value):
        return PATTERN_NUMERIC
    if _EMAIL_RE.match(value):
        return PATTERN_EMAIL
    if _PHONE_RE.match(value) and sum(ch.isdigit() for ch in value) >= 7:
        return PATTERN_PHONE
    if value.isupper():
        return PATTERN_UPPERCASE
    if value.islower():
        return PATTERN_LOWERCASE
    if value.istitle():
        return PATTERN_TITLE
    return PATTERN_MIXED


def iqr_outliers(values: Sequence[float]) -> tuple[list[int], tuple[float, float] | None]:
    """
    Indexes of values outside ``[Q1 - 1.5*IQR, Q3 + 1.5*IQR]`` plus the bounds.

    Fewer than four values never produce outliers.
    """

    if len(values) < MIN_OUTLIER_VALUES:
        return [], None
    array = np.asarray(values, dtype=float)
    q1, q3 = np.percentile(array, [25, 75])
    iqr = q3 - q1
    lower = float(q1 - IQR_MULTIPLIER * iqr)
    upper = float(q3 + IQR_MULTIPLIER * iqr)
    flagged = np.nonzero((array < lower) | (array > upper))[0]
    return [int(index) for index in flagged], (lower, upper)


class DataValidator:
    """
    Produces a :class:`ValidationReport` for processed records.

    Coercion diagnostics from the record transformer are optional; when given,
    blank numeric cells are counted as empty and unparseable cells as invalid
    even though the records already hold their fallback values.
    """

    def __init__(
        self,
        *,
        completeness_warning_ratio: float | None = None,
        case_inconsistency_ratio: float | None = None,
        profit_tolerance: float | None = None,
        max_issue_samples: int | None = None,
        today: date | None = None,
    ) -> None:
        settings = get_import_settings()
        self._completeness_warning_ratio = (
            completeness_warning_ratio
            if completeness_warning_ratio is not None
            else settings.completeness_warning_ratio
        )
        self._case_inconsistency_ratio = (
            case_inconsistency_ratio if case_inconsistency_ratio is not None else settings.case_inconsistency_ratio
        )
        self._profit_tolerance = profit_tolerance if profit_tolerance is not None else settings.profit_tolerance
        self._max_issue_samples = max_issue_samples if max_issue_samples is not None else settings.max_issue_samples
        self._today = today

    def validate(
        self,
        records: Sequence[ProcessedRecord],
        headers: Sequence[str],
        *,
        diagnostics: Sequence[RowDiagnostic] = (),
        row_numbers: Sequence[int] = (),
    ) -> ValidationReport:
        report = ValidationReport()
        row_ids = [
            row_numbers[index] if index < len(row_numbers) else index + 2
            for index in range(len(records))
        ]
        blank_cells = {
            (item.row_number, item.column) for item in diagnostics if item.code == DIAG_BLANK_NUMBER
        }
        invalid_cells = {
            (item.row_number, item.column)
            for item in diagnostics
            if item.code in {DIAG_INVALID_NUMBER, DIAG_INVALID_DATE}
        }
        raw_invalid = {
            (item.row_number, item.column): item.value
            for item in diagnostics
            if item.code in {DIAG_INVALID_NUMBER, DIAG_INVALID_DATE}
        }

        for field_name in headers:
            analysis = self._analyze_field(
                field_name,
                records=records,
                row_ids=row_ids,
                blank_cells=blank_cells,
                invalid_cells=invalid_cells,
                raw_invalid=raw_invalid,
                report=report,
            )
            report.field_analysis[field_name] = analysis

        self._check_required_headers(headers, report)
        self._check_profit_consistency(records, row_ids, headers, blank_cells | invalid_cells, report)
        report.quality = self._score(report, field_count=len(headers))

        counts = report.severity_counts()
        logger.info(
            "Validated records=%d fields=%d high=%d medium=%d low=%d overall=%d",
            len(records),
            len(headers),
            counts[SEVERITY_HIGH],
            counts[SEVERITY_MEDIUM],
            counts[SEVERITY_LOW],
            report.quality.overall,
        )
        return report

    # ------------------------------------------------------------------
    # Per-field analysis
    # ------------------------------------------------------------------

    def _analyze_field(
        self,
        field_name: str,
        *,
        records: Sequence[ProcessedRecord],
        row_ids: Sequence[int],
        blank_cells: set[tuple[int, str | None]],
        invalid_cells: set[tuple[int, str | None]],
        raw_invalid: dict[tuple[int, str | None], Any],
        report: ValidationReport,
    ) -> FieldAnalysis:
        analysis = FieldAnalysis(field=field_name, total=len(records))
        numeric_expected = field_name in NUMERIC_FIELDS
        date_expected = field_name in DATE_FIELDS

        values: list[tuple[int, Any]] = []
        invalid_samples: list[Any] = []
        for row_id, record in zip(row_ids, records):
            value = record.get(field_name)
            state = self._cell_state(
                value,
                key=(row_id, field_name),
                blank_cells=blank_cells,
                invalid_cells=invalid_cells,
                numeric_expected=numeric_expected,
                date_expected=date_expected,
            )
            if state == _CELL_EMPTY:
                analysis.empty += 1
            elif state == _CELL_INVALID:
                invalid_samples.append(raw_invalid.get((row_id, field_name), value))
            else:
                values.append((row_id, value))

        analysis.unique = len({self._hashable(value) for _, value in values})
        analysis.data_type = self._detect_type(value for _, value in values)

        if analysis.total and analysis.empty == analysis.total:
            self._add(
                report,
                analysis,
                ValidationIssue(
                    code="empty_field",
                    severity=SEVERITY_HIGH,
                    message=f"Field {field_name!r} has no values.",
                    field=field_name,
                    count=analysis.empty,
                ),
            )
            return analysis

        if analysis.total and analysis.completeness_ratio < self._completeness_warning_ratio:
            self._add(
                report,
                analysis,
                ValidationIssue(
                    code="low_completeness",
                    severity=SEVERITY_MEDIUM,
                    message=(
                        f"Field {field_name!r} is only {analysis.completeness_ratio:.0%} complete "
                        f"({analysis.empty} empty of {analysis.total})."
                    ),
                    field=field_name,
                    count=analysis.empty,
                ),
            )

        non_empty = analysis.non_empty
        if _contains_any(field_name, IDENTIFIER_KEYWORDS) and analysis.unique < non_empty:
            self._add(
                report,
                analysis,
                ValidationIssue(
                    code="duplicate_values",
                    severity=SEVERITY_MEDIUM,
                    message=f"Identifier-like field {field_name!r} has {non_empty - analysis.unique} duplicate value(s).",
                    field=field_name,
                    count=non_empty - analysis.unique,
                ),
            )

        if date_expected or analysis.data_type == TYPE_DATE:
            self._check_dates(field_name, values, invalid_samples, analysis, report)
        elif numeric_expected or analysis.data_type in NUMERIC_TYPES:
            self._check_numbers(field_name, values, invalid_samples, analysis, report)
        elif analysis.data_type == TYPE_TEXT:
            self._check_text(field_name, values, analysis, report)
        return analysis

    def _check_dates(
        self,
        field_name: str,
        values: Sequence[tuple[int, Any]],
        invalid_samples: Sequence[Any],
        analysis: FieldAnalysis,
        report: ValidationReport,
    ) -> None:
        if invalid_samples:
            self._add(
                report,
                analysis,
                ValidationIssue(
                    code="invalid_date",
                    severity=SEVERITY_HIGH,
                    message=f"{len(invalid_samples)} value(s) in {field_name!r} are not valid dates.",
                    field=field_name,
                    count=len(invalid_samples),
                    samples=tuple(invalid_samples[:SAMPLE_LIMIT]),
                ),
            )

        today = self._today or date.today()
        parsed = [parse_date(value) for _, value in values]
        future = [item for item in parsed if item is not None and item.year > today.year + 1]
        ancient = [item for item in parsed if item is not None and item.year < 1900]
        if future:
            self._add(
                report,
                analysis,
                ValidationIssue(
                    code="future_date",
                    severity=SEVERITY_MEDIUM,
                    message=f"{len(future)} date(s) in {field_name!r} are more than a year in the future.",
                    field=field_name,
                    count=len(future),
                    samples=tuple(item.isoformat() for item in future[:SAMPLE_LIMIT]),
                ),
            )
        if ancient:
            self._add(
                report,
                analysis,
                ValidationIssue(
                    code="ancient_date",
                    severity=SEVERITY_MEDIUM,
                    message=f"{len(ancient)} date(s) in {field_name!r} are before 1900.",
                    field=field_name,
                    count=len(ancient),
                    samples=tuple(item.isoformat() for item in ancient[:SAMPLE_LIMIT]),
                ),
            )

    def _check_numbers(
        self,
        field_name: str,
        values: Sequence[tuple[int, Any]],
        invalid_samples: Sequence[Any],
        analysis: FieldAnalysis,
        report: ValidationReport,
    ) -> None:
        if invalid_samples:
            self._add(
                report,
                analysis,
                ValidationIssue(
                    code="invalid_number",
                    severity=SEVERITY_HIGH,
                    message=f"{len(invalid_samples)} value(s) in {field_name!r} are not valid numbers.",
                    field=field_name,
                    count=len(invalid_samples),
                    samples=tuple(invalid_samples[:SAMPLE_LIMIT]),
                ),
            )

        numbers = [(row_id, parse_number(value)) for row_id, value in values]
        numbers = [(row_id, number) for row_id, number in numbers if number is not None]

        if _contains_any(field_name, FINANCIAL_KEYWORDS):
            flagged, bounds = iqr_outliers([number for _, number in numbers])
            if flagged and bounds is not None:
                analysis.outliers = [
                    Outlier(row_number=numbers[index][0], value=numbers[index][1]) for index in flagged
                ]
                self._add(
                    report,
                    analysis,
                    ValidationIssue(
                        code="outliers",
                        severity=SEVERITY_MEDIUM,
                        message=(
                            f"{len(flagged)} outlier(s) in {field_name!r} outside "
                            f"[{bounds[0]:.2f}, {bounds[1]:.2f}]."
                        ),
                        field=field_name,
                        count=len(flagged),
                        samples=tuple(item.value for item in analysis.outliers[:SAMPLE_LIMIT]),
                    ),
                )

        if _contains_any(field_name, NON_NEGATIVE_KEYWORDS):
            negatives = [number for _, number in numbers if number < 0]
            if negatives:
                self._add(
                    report,
                    analysis,
                    ValidationIssue(
                        code="negative_values",
                        severity=SEVERITY_MEDIUM,
                        message=f"{len(negatives)} negative value(s) in {field_name!r}.",
                        field=field_name,
                        count=len(negatives),
                        samples=tuple(negatives[:SAMPLE_LIMIT]),
                    ),
                )

    def _check_text(
        self,
        field_name: str,
        values: Sequence[tuple[int, Any]],
        analysis: FieldAnalysis,
        report: ValidationReport,
    ) -> None:
        texts = [str(value) for _, value in values]
        patterns = Counter(classify_pattern(text) for text in texts)
        analysis.patterns = dict(patterns.most_common(PATTERN_LIMIT))

        if not texts or not _contains_any(field_name, NAME_LIKE_KEYWORDS):
            return
        lowercase_only = [text for text in texts if text.islower()]
        has_upper = any(any(ch.isupper() for ch in text) for text in texts)
        ratio = len(lowercase_only) / len(texts)
        if has_upper and ratio > self._case_inconsistency_ratio:
            self._add(
                report,
                analysis,
                ValidationIssue(
                    code="case_inconsistency",
                    severity=SEVERITY_LOW,
                    message=(
                        f"{len(lowercase_only)} value(s) in {field_name!r} are all lowercase "
                        "while others are capitalised; consider normalising case."
                    ),
                    field=field_name,
                    count=len(lowercase_only),
                    samples=tuple(lowercase_only[:SAMPLE_LIMIT]),
                ),
            )

    # ------------------------------------------------------------------
    # Cross-record rules
    # ------------------------------------------------------------------

    @staticmethod
    def _check_required_headers(headers: Sequence[str], report: ValidationReport) -> None:
        for required in VALIDATION_REQUIRED_FIELDS:
            if required not in headers:
                report.errors.append(
                    ValidationIssue(
                        code="missing_required_field",
                        severity=SEVERITY_HIGH,
                        message=f"Required field {required!r} is not present.",
                        field=required,
                    )
                )

    def _check_profit_consistency(
        self,
        records: Sequence[ProcessedRecord],
        row_ids: Sequence[int],
        headers: Sequence[str],
        absent_cells: set[tuple[int, str | None]],
        report: ValidationReport,
    ) -> None:
        if not all(name in headers for name in (FIELD_SALES, FIELD_PROFIT, FIELD_COST)):
            return

        mismatched = 0
        for row_id, record in zip(row_ids, records):
            values = []
            for name in (FIELD_SALES, FIELD_PROFIT, FIELD_COST):
                value = record.get(name)
                if (row_id, name) in absent_cells or not isinstance(value, (int, float)):
                    break
                values.append(float(value))
            else:
                sales, profit, cost = values
                expected = sales - cost
                if abs(profit - expected) <= self._profit_tolerance:
                    continue
                mismatched += 1
                if mismatched > self._max_issue_samples:
                    continue
                report.warnings.append(
                    ValidationIssue(
                        code="profit_mismatch",
                        severity=SEVERITY_MEDIUM,
                        message=(
                            f"Row {row_id}: reported profit {profit:.2f} differs from "
                            f"sales minus cost {expected:.2f}."
                        ),
                        field=FIELD_PROFIT,
                        count=1,
                        row_number=row_id,
                    )
                )

        if mismatched > self._max_issue_samples:
            logger.warning(
                "Profit mismatches=%d, reported first %d",
                mismatched,
                self._max_issue_samples,
            )

    # ------------------------------------------------------------------
    # Scoring and helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _score(report: ValidationReport, *, field_count: int) -> QualityScores:
        analyses = [item for item in report.field_analysis.values() if item.total > 0]
        if field_count == 0 or not analyses:
            return QualityScores()

        completeness = sum(item.completeness_ratio * 100 for item in analyses) / len(analyses)
        detected = sum(1 for item in report.field_analysis.values() if item.data_type != TYPE_UNKNOWN)
        consistency = detected / field_count * 100
        accuracy = 100 - (len(report.errors) / field_count * 10)

        completeness = round(max(0.0, min(100.0, completeness)))
        consistency = round(max(0.0, min(100.0, consistency)))
        accuracy = round(max(0.0, min(100.0, accuracy)))
        overall = round((completeness + consistency + accuracy) / 3)
        return QualityScores(
            completeness=completeness,
            consistency=consistency,
            accuracy=accuracy,
            overall=overall,
        )

    @staticmethod
    def _cell_state(
        value: Any,
        *,
        key: tuple[int, str],
        blank_cells: set[tuple[int, str | None]],
        invalid_cells: set[tuple[int, str | None]],
        numeric_expected: bool,
        date_expected: bool,
    ) -> str:
        if key in invalid_cells:
            return _CELL_INVALID
        if key in blank_cells or value is None:
            return _CELL_EMPTY
        if isinstance(value, str):
            if not value.strip():
                return _CELL_EMPTY
            if numeric_expected and parse_number(value) is None:
                return _CELL_INVALID
            if date_expected and parse_date(value) is None:
                return _CELL_INVALID
        return _CELL_VALUE

    @staticmethod
    def _detect_type(values: Iterable[Any]) -> str:
        items = list(values)
        if not items:
            return TYPE_UNKNOWN
        if all(isinstance(item, date) for item in items):
            return TYPE_DATE
        if all(isinstance(item, (int, float)) and not isinstance(item, bool) for item in items):
            return TYPE_NUMBER
        texts = [str(item).strip() for item in items]
        if all(is_number_like(text) for text in texts):
            return TYPE_NUMBER
        if all(is_currency_like(text) for text in texts):
            return TYPE_CURRENCY
        if all(parse_date(text) is not None for text in texts):
            return TYPE_DATE
        return TYPE_TEXT

    @staticmethod
    def _hashable(value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @staticmethod
    def _add(report: ValidationReport, analysis: FieldAnalysis, issue: ValidationIssue) -> None:
        analysis.issues.append(issue)
        if issue.severity == SEVERITY_HIGH:
            report.errors.append(issue)
        elif issue.severity == SEVERITY_MEDIUM:
            report.warnings.append(issue)
        else:
            report.suggestions.append(issue)
