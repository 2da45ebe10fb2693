"""
app/transformers/record_transformer.py

Applies a resolved field mapping to parsed rows and coerces cell values.

Mapped columns are renamed to their semantic field and coerced by that field's
type; unmapped columns pass through as trimmed text under their source name.
Cell problems never abort the import: they are returned as row diagnostics.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Sequence

from app.config import get_import_settings
from app.domain.dataset import ProcessedRecord
from app.domain.fields import (
    FIELD_GALLONS,
    FIELD_PROFIT,
    FIELD_PROFIT_MARGIN,
    FIELD_REVENUE_PER_GALLON,
    FIELD_SALES,
    TYPE_DATE,
    TYPE_TEXT,
    expected_type,
)
from app.domain.imports import FieldMapping, ParsedTable, RowDiagnostic, TransformResult
from app.transformers.coercion import is_blank, is_null_token, parse_date, parse_number

logger = logging.getLogger(__name__)

DIAG_INVALID_DATE = "invalid_date"
DIAG_INVALID_NUMBER = "invalid_number"
DIAG_BLANK_NUMBER = "blank_number"

# (derived field, numerator, denominator, scale)
DERIVED_RULES: tuple[tuple[str, str, str, float], ...] = (
    (FIELD_PROFIT_MARGIN, FIELD_PROFIT, FIELD_SALES, 100.0),
    (FIELD_REVENUE_PER_GALLON, FIELD_SALES, FIELD_GALLONS, 1.0),
)


def effective_headers(source_headers: Sequence[str], mapping: FieldMapping) -> tuple[str, ...]:
    """
    Output name for every source position.

    Mapped columns claim their semantic names first; any later collision gets
    a numbered suffix such as ``"Sales (2)"``. A duplicated source header is
    mapped at its first occurrence only.
    """

    names: list[str | None] = [None] * len(source_headers)
    taken: set[str] = set()
    seen_sources: set[str] = set()
    for position, header in enumerate(source_headers):
        if header in seen_sources:
            continue
        seen_sources.add(header)
        semantic_field = mapping.field_for(header)
        if semantic_field is not None and semantic_field not in taken:
            names[position] = semantic_field
            taken.add(semantic_field)

    for position, header in enumerate(source_headers):
        if names[position] is not None:
            continue
        candidate = header
        suffix = 2
        while candidate in taken:
            candidate = f"{header} ({suffix})"
            suffix += 1
        names[position] = candidate
        taken.add(candidate)

    return tuple(name for name in names if name is not None)


class RecordTransformer:
    """
    Turns a :class:`ParsedTable` plus :class:`FieldMapping` into typed records.
    """

    def __init__(self, *, strict_numbers: bool | None = None) -> None:
        settings = get_import_settings()
        self._strict_numbers = settings.strict_numbers if strict_numbers is None else strict_numbers

    def transform(self, table: ParsedTable, mapping: FieldMapping) -> TransformResult:
        names = effective_headers(table.headers, mapping)
        mapped_positions = self._mapped_positions(table.headers, mapping)
        value_types = [
            expected_type(name) if position in mapped_positions else TYPE_TEXT
            for position, name in enumerate(names)
        ]
        derived = [
            rule
            for rule in DERIVED_RULES
            if rule[0] not in names and rule[1] in mapping.mapped_fields and rule[2] in mapping.mapped_fields
        ]
        headers = (*names, *(rule[0] for rule in derived))

        records: list[ProcessedRecord] = []
        row_numbers: list[int] = []
        diagnostics: list[RowDiagnostic] = []
        dropped = 0
        for index, row in enumerate(table.rows):
            if all(is_blank(cell) for cell in row):
                dropped += 1
                continue
            row_number = table.row_number(index)
            record: ProcessedRecord = {}
            for position, cell in enumerate(row):
                name = names[position]
                record[name] = self._coerce(
                    cell,
                    value_type=value_types[position],
                    field_name=name,
                    row_number=row_number,
                    diagnostics=diagnostics,
                )
            for field_name, numerator, denominator, scale in derived:
                record[field_name] = self.derive(record.get(numerator), record.get(denominator), scale)
            records.append(record)
            row_numbers.append(row_number)

        if diagnostics:
            counts = Counter(item.code for item in diagnostics)
            logger.warning(
                "Coercion diagnostics %s",
                ", ".join(f"{code}={count}" for code, count in sorted(counts.items())),
            )
        logger.info("Transformed records=%d dropped_empty=%d", len(records), dropped)
        return TransformResult(
            headers=headers,
            records=records,
            diagnostics=diagnostics,
            dropped_rows=dropped,
            row_numbers=tuple(row_numbers),
        )

    @staticmethod
    def derive(numerator, denominator, scale: float = 1.0) -> float | None:
        """
        Ratio of two coerced numbers, or None when either is missing or the
        denominator is zero.
        """

        if numerator is None or denominator is None or denominator == 0:
            return None
        return numerator / denominator * scale

    def _coerce(
        self,
        cell: str,
        *,
        value_type: str,
        field_name: str,
        row_number: int,
        diagnostics: list[RowDiagnostic],
    ):
        if value_type == TYPE_TEXT:
            return "" if cell is None else str(cell).strip()

        if value_type == TYPE_DATE:
            if is_blank(cell):
                return None
            parsed = parse_date(cell)
            if parsed is None:
                diagnostics.append(
                    RowDiagnostic(
                        row_number=row_number,
                        code=DIAG_INVALID_DATE,
                        message=f"Could not parse {cell!r} as a date; value left empty.",
                        column=field_name,
                        value=cell,
                    )
                )
            return parsed

        if is_null_token(cell):
            diagnostics.append(
                RowDiagnostic(
                    row_number=row_number,
                    code=DIAG_BLANK_NUMBER,
                    message="Empty numeric value read as 0.",
                    column=field_name,
                    value=cell,
                )
            )
            return 0.0

        parsed_number = parse_number(cell)
        if parsed_number is None:
            fallback = None if self._strict_numbers else 0.0
            diagnostics.append(
                RowDiagnostic(
                    row_number=row_number,
                    code=DIAG_INVALID_NUMBER,
                    message=f"Could not parse {cell!r} as a number; value read as {fallback}.",
                    column=field_name,
                    value=cell,
                )
            )
            return fallback
        return parsed_number

    @staticmethod
    def _mapped_positions(source_headers: Sequence[str], mapping: FieldMapping) -> set[int]:
        positions: set[int] = set()
        seen: set[str] = set()
        for position, header in enumerate(source_headers):
            if header in seen:
                continue
            seen.add(header)
            if mapping.field_for(header) is not None:
                positions.add(position)
        return positions
