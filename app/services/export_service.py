"""
app/services/export_service.py

Delimited-text export of processed records.

Dates are written as ``YYYY-MM-DD``; values containing the delimiter, the
quote character or a line break are quoted with embedded quotes doubled.
Missing values are written as empty cells.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterator, Sequence

from app.config import get_import_settings
from app.domain.dataset import ProcessedRecord, RecordSource

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Export result container
# ---------------------------------------------------------------------------


@dataclass
class ExportResult:
    """
    Flat rows of display strings plus the ordered column list.
    """

    rows: list[dict[str, str]] = field(default_factory=list)
    fields: list[str] = field(default_factory=list)


def _collect_fields(records: Sequence[ProcessedRecord]) -> list[str]:
    """
    Union all keys across records while preserving first-seen order.
    """
    seen: dict[str, None] = {}
    for record in records:
        for key in record:
            seen.setdefault(key, None)
    return list(seen)


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    return str(value)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ExportService:
    """
    Serialises a record source back to delimited text.
    """

    def __init__(self, *, delimiter: str | None = None, quote_char: str = '"') -> None:
        self._delimiter = delimiter or get_import_settings().default_delimiter
        self._quote_char = quote_char

    def collect(self, source: RecordSource, *, headers: Sequence[str] | None = None) -> ExportResult:
        records = source.get_records()
        fields = list(headers) if headers else _collect_fields(records)
        for extra in _collect_fields(records):
            if extra not in fields:
                fields.append(extra)
        rows = [{name: format_value(record.get(name)) for name in fields} for record in records]
        return ExportResult(rows=rows, fields=fields)

    def iter_lines(self, result: ExportResult) -> Iterator[str]:
        """
        Yield the header line and then one line per row.
        """

        buffer = io.StringIO()
        writer = csv.DictWriter(
            buffer,
            fieldnames=result.fields,
            delimiter=self._delimiter,
            quotechar=self._quote_char,
            quoting=csv.QUOTE_MINIMAL,
            doublequote=True,
            extrasaction="ignore",
            restval="",
            lineterminator="\r\n",
        )
        writer.writeheader()
        yield buffer.getvalue()

        for row in result.rows:
            buffer.seek(0)
            buffer.truncate(0)
            writer.writerow(row)
            yield buffer.getvalue()

    def to_delimited(self, source: RecordSource, *, headers: Sequence[str] | None = None) -> str:
        result = self.collect(source, headers=headers)
        text = "".join(self.iter_lines(result))
        logger.info("Exported rows=%d columns=%d", len(result.rows), len(result.fields))
        return text
