"""
app/domain package marker.
"""

from app.domain.dataset import Dataset, RecordSource, StaticRecordSource, SummaryStatistics
from app.domain.imports import ColumnProfile, FieldMapping, ParsedTable, RowDiagnostic
from app.domain.registry import DatasetExistsError, DatasetNotFoundError, DatasetRegistry
from app.domain.validation import ValidationIssue, ValidationReport

__all__ = [
    "ColumnProfile",
    "Dataset",
    "DatasetExistsError",
    "DatasetNotFoundError",
    "DatasetRegistry",
    "FieldMapping",
    "ParsedTable",
    "RecordSource",
    "RowDiagnostic",
    "StaticRecordSource",
    "SummaryStatistics",
    "ValidationIssue",
    "ValidationReport",
]
