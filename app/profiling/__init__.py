"""
app/profiling package marker.
"""

from app.profiling.schema_profiler import KEYWORD_RULES, SchemaProfiler, SuggestionRule

__all__ = [
    "KEYWORD_RULES",
    "SchemaProfiler",
    "SuggestionRule",
]
