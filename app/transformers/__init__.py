"""
app/transformers package marker.
"""

from app.transformers.coercion import parse_date, parse_number
from app.transformers.record_transformer import RecordTransformer, effective_headers

__all__ = [
    "RecordTransformer",
    "effective_headers",
    "parse_date",
    "parse_number",
]
