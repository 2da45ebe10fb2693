"""
app/mappers package marker.
"""

from app.mappers.schema_mapper import MODE_AUTO_DETECT, MODE_CONFIRM, SchemaMapper

__all__ = [
    "MODE_AUTO_DETECT",
    "MODE_CONFIRM",
    "SchemaMapper",
]
