"""
app/parsers package marker.
"""

from app.parsers.tabular_parser import (
    FORMAT_DELIMITED,
    FORMAT_WORKBOOK,
    ParseError,
    TabularParser,
    UnsupportedFormatError,
    detect_format,
)

__all__ = [
    "FORMAT_DELIMITED",
    "FORMAT_WORKBOOK",
    "ParseError",
    "TabularParser",
    "UnsupportedFormatError",
    "detect_format",
]
