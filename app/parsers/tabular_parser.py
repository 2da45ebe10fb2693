"""
app/parsers/tabular_parser.py

Turns uploaded delimited text or workbook bytes into a grid of string cells.

Delimited text is read line by line: blank lines are skipped, each line is
split on the delimiter with double-quote quoting (a doubled quote inside a
quoted field is a literal quote). Workbooks are decoded with pandas/openpyxl,
the selected sheet is serialised back to delimited text and then parsed the
same way, so both formats share one row policy.

A data row whose field count differs from the header count is skipped and
recorded as a ``row_length_mismatch`` diagnostic; it never aborts the import.
"""

from __future__ import annotations

import csv
import io
import logging
from pathlib import PurePath
from typing import Any, Final

import pandas as pd

from app.domain.imports import ParsedTable, RowDiagnostic

logger = logging.getLogger(__name__)

FORMAT_DELIMITED: Final[str] = "delimited"
FORMAT_WORKBOOK: Final[str] = "workbook"

_EXTENSION_FORMATS: dict[str, tuple[str, str | None]] = {
    ".csv": (FORMAT_DELIMITED, ","),
    ".txt": (FORMAT_DELIMITED, ","),
    ".tsv": (FORMAT_DELIMITED, "\t"),
    ".xlsx": (FORMAT_WORKBOOK, None),
    ".xlsm": (FORMAT_WORKBOOK, None),
    ".xls": (FORMAT_WORKBOOK, None),
}


class ParseError(ValueError):
    """
    Raised when uploaded content cannot be turned into a header plus data rows.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "details": self.details}


class UnsupportedFormatError(ParseError):
    """
    Raised for unknown file extensions or unreadable workbooks.
    """


def detect_format(filename: str) -> tuple[str, str | None]:
    """
    Derive ``(format_hint, delimiter)`` from a file name's extension.
    """

    suffix = PurePath(filename or "").suffix.lower()
    try:
        return _EXTENSION_FORMATS[suffix]
    except KeyError:
        supported = ", ".join(sorted(_EXTENSION_FORMATS))
        raise UnsupportedFormatError(
            f"Unsupported file type {suffix or '<none>'!r}. Supported: {supported}.",
            details={"filename": filename},
        ) from None


class TabularParser:
    """
    Parses delimited text and workbook sheets into :class:`ParsedTable`.
    """

    def __init__(self, *, delimiter: str = ",", quote_char: str = '"') -> None:
        if len(delimiter) != 1:
            raise ValueError("delimiter must be a single character.")
        self._delimiter = delimiter
        self._quote_char = quote_char

    def parse(
        self,
        content: bytes | str,
        *,
        format_hint: str = FORMAT_DELIMITED,
        delimiter: str | None = None,
        sheet_name: str | None = None,
        source_description: str = "",
    ) -> ParsedTable:
        """
        Parse *content* according to *format_hint*.
        """

        if format_hint == FORMAT_WORKBOOK:
            if isinstance(content, str):
                raise UnsupportedFormatError("Workbook content must be bytes.")
            sheet_names = self.list_sheets(content)
            text = self.workbook_to_text(content, sheet_name=sheet_name)
            table = self.parse_text(text, source_description=source_description)
            return ParsedTable(
                headers=table.headers,
                rows=table.rows,
                diagnostics=table.diagnostics,
                source_description=table.source_description,
                sheet_names=sheet_names,
                row_numbers=table.row_numbers,
            )
        if format_hint != FORMAT_DELIMITED:
            raise UnsupportedFormatError(f"Unknown format hint {format_hint!r}.")

        text = content if isinstance(content, str) else self.decode(content)
        return self.parse_text(
            text,
            delimiter=delimiter,
            source_description=source_description,
        )

    def parse_text(
        self,
        text: str,
        *,
        delimiter: str | None = None,
        source_description: str = "",
    ) -> ParsedTable:
        """
        Parse delimited text into headers and equal-length rows.
        """

        active_delimiter = delimiter or self._delimiter
        lines = [
            (line_number, line)
            for line_number, line in enumerate(text.splitlines(), start=1)
            if line.strip()
        ]
        if len(lines) < 2:
            raise ParseError(
                "File must have at least a header row and one data row.",
                details={"non_blank_lines": len(lines)},
            )

        header_line_number, header_line = lines[0]
        try:
            header_cells = self.split_row(header_line, delimiter=active_delimiter)
        except csv.Error as exc:
            raise ParseError(
                f"Header row could not be parsed: {exc}",
                details={"line_number": header_line_number},
            ) from exc
        headers = tuple(
            cell or f"Column {index}" for index, cell in enumerate(header_cells, start=1)
        )

        rows: list[tuple[str, ...]] = []
        row_numbers: list[int] = []
        diagnostics: list[RowDiagnostic] = []
        for line_number, line in lines[1:]:
            try:
                cells = self.split_row(line, delimiter=active_delimiter)
            except csv.Error as exc:
                diagnostics.append(
                    RowDiagnostic(
                        row_number=line_number,
                        code="malformed_row",
                        message=f"Row could not be parsed: {exc}",
                        value=line,
                    )
                )
                continue

            if len(cells) != len(headers):
                diagnostics.append(
                    RowDiagnostic(
                        row_number=line_number,
                        code="row_length_mismatch",
                        message=f"Row has {len(cells)} columns, expected {len(headers)}. Skipped.",
                        value=line,
                    )
                )
                continue
            rows.append(tuple(cells))
            row_numbers.append(line_number)

        if diagnostics:
            logger.warning(
                "Skipped %d malformed row(s) while parsing %s",
                len(diagnostics),
                source_description or "upload",
            )
        logger.info(
            "Parsed table columns=%d rows=%d skipped=%d",
            len(headers),
            len(rows),
            len(diagnostics),
        )
        return ParsedTable(
            headers=headers,
            rows=rows,
            diagnostics=diagnostics,
            source_description=source_description,
            row_numbers=tuple(row_numbers),
        )

    def split_row(self, line: str, *, delimiter: str | None = None) -> list[str]:
        """
        Split one line into trimmed cells, honouring quoted segments.
        """

        reader = csv.reader(
            [line],
            delimiter=delimiter or self._delimiter,
            quotechar=self._quote_char,
            doublequote=True,
            skipinitialspace=True,
        )
        cells = next(reader, [])
        return [cell.strip() for cell in cells]

    @staticmethod
    def decode(content: bytes) -> str:
        try:
            return content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ParseError("File must be UTF-8 encoded.", details={"position": exc.start}) from exc

    # ------------------------------------------------------------------
    # Workbooks
    # ------------------------------------------------------------------

    def list_sheets(self, content: bytes) -> tuple[str, ...]:
        try:
            with pd.ExcelFile(io.BytesIO(content), engine="openpyxl") as workbook:
                return tuple(str(name) for name in workbook.sheet_names)
        except Exception as exc:
            raise UnsupportedFormatError(f"Could not read workbook: {exc}") from exc

    def workbook_to_text(self, content: bytes, *, sheet_name: str | None = None) -> str:
        """
        Serialise one workbook sheet (the first when *sheet_name* is None) to
        delimited text using the parser's delimiter.
        """

        try:
            frame = pd.read_excel(
                io.BytesIO(content),
                sheet_name=sheet_name if sheet_name is not None else 0,
                header=None,
                dtype=str,
                engine="openpyxl",
            )
        except ValueError as exc:
            raise ParseError(
                f"Sheet could not be read: {exc}",
                details={"sheet_name": sheet_name},
            ) from exc
        except Exception as exc:
            raise UnsupportedFormatError(f"Could not read workbook: {exc}") from exc

        frame = frame.dropna(how="all").dropna(axis=1, how="all")
        buffer = io.StringIO()
        frame.to_csv(
            buffer,
            index=False,
            header=False,
            sep=self._delimiter,
            quotechar=self._quote_char,
            lineterminator="\n",
        )
        logger.info(
            "Workbook sheet %r serialised rows=%d columns=%d",
            sheet_name if sheet_name is not None else 0,
            len(frame.index),
            len(frame.columns),
        )
        return buffer.getvalue()
