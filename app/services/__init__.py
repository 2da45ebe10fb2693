"""
app/services package marker.
"""

from app.services.aggregation_service import AggregationService, growth_rate
from app.services.export_service import ExportResult, ExportService
from app.services.import_service import ImportService, UploadTooLargeError, get_import_service

__all__ = [
    "AggregationService",
    "growth_rate",
    "ExportResult",
    "ExportService",
    "ImportService",
    "UploadTooLargeError",
    "get_import_service",
]
