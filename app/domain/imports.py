"""
app/domain/imports.py

Domain models used by the tabular import flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from app.domain.dataset import Dataset, ProcessedRecord
from app.domain.fields import REQUIRED_FIELDS
from app.domain.validation import ValidationReport


@dataclass(frozen=True)
class RowDiagnostic:
    """
    One non-fatal row or cell problem found while importing.
    """

    row_number: int
    code: str
    message: str
    column: str | None = None
    value: str | None = None


@dataclass(frozen=True)
class ParsedTable:
    """
    Raw grid of string cells produced by the tabular parser.
    """

    headers: tuple[str, ...]
    rows: list[tuple[str, ...]]
    diagnostics: list[RowDiagnostic] = field(default_factory=list)
    source_description: str = ""
    sheet_names: tuple[str, ...] = ()
    row_numbers: tuple[int, ...] = ()

    def row_number(self, index: int) -> int:
        """
        Source line number of data row *index*, or a positional fallback.
        """

        if index < len(self.row_numbers):
            return self.row_numbers[index]
        return index + 2

    @property
    def skipped_rows(self) -> int:
        return sum(1 for item in self.diagnostics if item.code == "row_length_mismatch")


@dataclass(frozen=True)
class ColumnProfile:
    """
    Inferred type and suggested semantic field for one source column.
    """

    name: str
    position: int
    inferred_type: str
    sample_values: tuple[str, ...]
    suggested_field: str | None
    confidence: float
    match_reason: str = "none"


@dataclass(frozen=True)
class FieldMapping:
    """
    Final source-column to semantic-field mapping.

    Source columns absent from ``source_to_field`` pass through under their
    original name.
    """

    source_to_field: dict[str, str]
    source_headers: tuple[str, ...]
    strategies: dict[str, str] = field(default_factory=dict)
    confidences: dict[str, float] = field(default_factory=dict)

    def field_for(self, source_column: str) -> str | None:
        return self.source_to_field.get(source_column)

    def source_for(self, semantic_field: str) -> str | None:
        for source_column, mapped in self.source_to_field.items():
            if mapped == semantic_field:
                return source_column
        return None

    @property
    def mapped_fields(self) -> frozenset[str]:
        return frozenset(self.source_to_field.values())

    def missing_required(self) -> list[str]:
        mapped = self.mapped_fields
        return [name for name in REQUIRED_FIELDS if name not in mapped]

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_to_field": dict(self.source_to_field),
            "strategies": dict(self.strategies),
            "confidences": dict(self.confidences),
        }


@dataclass(frozen=True)
class TransformResult:
    """
    Coerced records plus the effective headers they are keyed by.
    """

    headers: tuple[str, ...]
    records: list[ProcessedRecord]
    diagnostics: list[RowDiagnostic] = field(default_factory=list)
    dropped_rows: int = 0
    row_numbers: tuple[int, ...] = ()


@dataclass(frozen=True)
class ImportPreview:
    """
    Mapping-confirmation payload shown to the user before a dataset is built.
    """

    headers: tuple[str, ...]
    profiles: list[ColumnProfile]
    suggested_mapping: FieldMapping
    missing_required: list[str]
    diagnostics: list[RowDiagnostic]
    row_count: int
    sheet_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class ImportResult:
    """
    End-of-run import outcome.
    """

    dataset: Dataset
    report: ValidationReport
    mapping: FieldMapping
    diagnostics: list[RowDiagnostic] = field(default_factory=list)
    rows_skipped: int = 0
    rows_dropped: int = 0
