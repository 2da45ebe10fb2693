"""
app/profiling/schema_profiler.py

Column type inference and semantic-field suggestions for uploaded tables.

Each column is profiled from a small non-empty sample. The inferred type is
the first of currency, number and date that a large enough share of the sample
matches, falling back to text. Field suggestions come from an ordered rule
table: an exact semantic-name match first, then keyword rules, then type-only
rules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from app.config import get_import_settings
from app.domain.fields import (
    FIELD_COST,
    FIELD_CUSTOMER,
    FIELD_DATE,
    FIELD_DRIVER,
    FIELD_GALLONS,
    FIELD_LOCATION,
    FIELD_PRODUCT_TYPE,
    FIELD_PROFIT,
    FIELD_SALES,
    NUMERIC_TYPES,
    SEMANTIC_FIELDS,
    TYPE_CURRENCY,
    TYPE_DATE,
    TYPE_NUMBER,
    TYPE_TEXT,
    normalize_header,
)
from app.domain.imports import ColumnProfile
from app.transformers.coercion import is_blank, is_currency_like, is_date_like, is_number_like

logger = logging.getLogger(__name__)

CONFIDENCE_EXACT_NAME = 0.9
CONFIDENCE_KEYWORD = 0.7
CONFIDENCE_TYPE_ONLY = 0.5
CONFIDENCE_NONE = 0.3

MATCH_EXACT_NAME = "exact_name"
MATCH_KEYWORD = "keyword"
MATCH_TYPE = "type"
MATCH_NONE = "none"


@dataclass(frozen=True)
class SuggestionRule:
    """
    Keyword rule: a column whose name contains any keyword suggests ``field``.

    ``types`` restricts the rule to columns of those inferred types; ``None``
    accepts any type.
    """

    field: str
    keywords: tuple[str, ...]
    types: frozenset[str] | None = None

    def matches(self, lowered_name: str, inferred_type: str) -> bool:
        if self.types is not None and inferred_type not in self.types:
            return False
        return any(keyword in lowered_name for keyword in self.keywords)


KEYWORD_RULES: tuple[SuggestionRule, ...] = (
    SuggestionRule(FIELD_DATE, ("date", "time")),
    SuggestionRule(FIELD_GALLONS, ("gallon", "quantity", "qty", "gal"), NUMERIC_TYPES),
    SuggestionRule(FIELD_PROFIT, ("profit", "margin"), frozenset({TYPE_CURRENCY})),
    SuggestionRule(FIELD_COST, ("cost", "expense"), frozenset({TYPE_CURRENCY})),
    SuggestionRule(FIELD_SALES, ("sales", "revenue", "amount", "amt")),
    SuggestionRule(FIELD_LOCATION, ("location", "address", "city", "state")),
    SuggestionRule(FIELD_CUSTOMER, ("customer", "client")),
    SuggestionRule(FIELD_DRIVER, ("driver", "operator")),
    SuggestionRule(FIELD_PRODUCT_TYPE, ("product", "fuel", "type")),
)

TYPE_RULES: tuple[tuple[str, str], ...] = (
    (TYPE_DATE, FIELD_DATE),
    (TYPE_CURRENCY, FIELD_SALES),
)

# Checked in priority order; the first type meeting the match ratio wins.
TYPE_PREDICATES: tuple[tuple[str, Callable[[str], bool]], ...] = (
    (TYPE_CURRENCY, is_currency_like),
    (TYPE_NUMBER, is_number_like),
    (TYPE_DATE, is_date_like),
)

_EXACT_NAMES: dict[str, str] = {normalize_header(name): name for name in SEMANTIC_FIELDS}


class SchemaProfiler:
    """
    Builds one :class:`ColumnProfile` per source header.
    """

    def __init__(
        self,
        *,
        sample_size: int | None = None,
        type_match_ratio: float | None = None,
        keyword_rules: Sequence[SuggestionRule] = KEYWORD_RULES,
        type_rules: Sequence[tuple[str, str]] = TYPE_RULES,
    ) -> None:
        settings = get_import_settings()
        self._sample_size = max(1, sample_size if sample_size is not None else settings.profile_sample_size)
        self._type_match_ratio = (
            type_match_ratio if type_match_ratio is not None else settings.type_match_ratio
        )
        self._keyword_rules = tuple(keyword_rules)
        self._type_rules = tuple(type_rules)

    def profile(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
    ) -> list[ColumnProfile]:
        """
        Profile every column, addressing duplicate header names by position.
        """

        profiles = [
            self.profile_column(
                name=header,
                position=position,
                values=(row[position] for row in rows if position < len(row)),
            )
            for position, header in enumerate(headers)
        ]
        suggested = sum(1 for item in profiles if item.suggested_field is not None)
        logger.info("Profiled columns=%d suggested=%d", len(profiles), suggested)
        return profiles

    def profile_column(self, *, name: str, position: int, values) -> ColumnProfile:
        sample = self._take_sample(values)
        inferred_type = self.infer_type(sample)
        suggested_field, confidence, reason = self.suggest_field(name, inferred_type)
        logger.debug(
            "Column %r type=%s suggestion=%s confidence=%.1f reason=%s",
            name,
            inferred_type,
            suggested_field,
            confidence,
            reason,
        )
        return ColumnProfile(
            name=name,
            position=position,
            inferred_type=inferred_type,
            sample_values=sample,
            suggested_field=suggested_field,
            confidence=confidence,
            match_reason=reason,
        )

    def infer_type(self, sample: Sequence[str]) -> str:
        if not sample:
            return TYPE_TEXT
        for type_name, predicate in TYPE_PREDICATES:
            matched = sum(1 for value in sample if predicate(value))
            if matched / len(sample) >= self._type_match_ratio:
                return type_name
        return TYPE_TEXT

    def suggest_field(self, name: str, inferred_type: str) -> tuple[str | None, float, str]:
        """
        Return ``(field, confidence, reason)`` for one column.
        """

        exact = _EXACT_NAMES.get(normalize_header(name))
        if exact is not None:
            return exact, CONFIDENCE_EXACT_NAME, MATCH_EXACT_NAME

        lowered = name.strip().lower()
        for rule in self._keyword_rules:
            if rule.matches(lowered, inferred_type):
                return rule.field, CONFIDENCE_KEYWORD, MATCH_KEYWORD

        for type_name, field_name in self._type_rules:
            if inferred_type == type_name:
                return field_name, CONFIDENCE_TYPE_ONLY, MATCH_TYPE

        return None, CONFIDENCE_NONE, MATCH_NONE

    def _take_sample(self, values) -> tuple[str, ...]:
        sample: list[str] = []
        for value in values:
            if is_blank(value):
                continue
            sample.append(str(value).strip())
            if len(sample) >= self._sample_size:
                break
        return tuple(sample)
