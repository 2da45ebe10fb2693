"""
app/validators package marker.
"""

from app.validators.data_validator import DataValidator
from app.validators.mapping_validator import (
    MappingErrorDetail,
    MappingValidator,
    MissingRequiredFieldError,
    SchemaMappingError,
)

__all__ = [
    "DataValidator",
    "MappingErrorDetail",
    "MappingValidator",
    "MissingRequiredFieldError",
    "SchemaMappingError",
]
