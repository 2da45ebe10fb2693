"""
app/schemas package marker.
"""

from app.schemas.imports import (
    BreakdownResponse,
    DatasetResponse,
    ImportPreviewResponse,
    ImportResultResponse,
    ValidationReportResponse,
)

__all__ = [
    "BreakdownResponse",
    "DatasetResponse",
    "ImportPreviewResponse",
    "ImportResultResponse",
    "ValidationReportResponse",
]
