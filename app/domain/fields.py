"""
app/domain/fields.py

Semantic field vocabulary shared by every import stage.
"""

from __future__ import annotations

from typing import Final

FIELD_DATE: Final[str] = "Date"
FIELD_SALES: Final[str] = "Sales"
FIELD_GALLONS: Final[str] = "Gallon Qty"
FIELD_PROFIT: Final[str] = "Actual Profit By Item"
FIELD_COST: Final[str] = "Actual Cost by item"
FIELD_CUSTOMER: Final[str] = "Customer"
FIELD_DRIVER: Final[str] = "Driver"
FIELD_PRODUCT_TYPE: Final[str] = "Product Type"
FIELD_LOCATION: Final[str] = "Location"

FIELD_PROFIT_MARGIN: Final[str] = "ProfitMargin"
FIELD_REVENUE_PER_GALLON: Final[str] = "RevenuePerGallon"

SEMANTIC_FIELDS: tuple[str, ...] = (
    FIELD_DATE,
    FIELD_SALES,
    FIELD_GALLONS,
    FIELD_PROFIT,
    FIELD_COST,
    FIELD_CUSTOMER,
    FIELD_DRIVER,
    FIELD_PRODUCT_TYPE,
    FIELD_LOCATION,
)

REQUIRED_FIELDS: tuple[str, ...] = (
    FIELD_DATE,
    FIELD_SALES,
    FIELD_GALLONS,
)

DATE_FIELDS: frozenset[str] = frozenset({FIELD_DATE})
CURRENCY_FIELDS: frozenset[str] = frozenset({FIELD_SALES, FIELD_PROFIT, FIELD_COST})
NUMERIC_FIELDS: frozenset[str] = frozenset({FIELD_SALES, FIELD_GALLONS, FIELD_PROFIT, FIELD_COST})
DERIVED_FIELDS: tuple[str, ...] = (FIELD_PROFIT_MARGIN, FIELD_REVENUE_PER_GALLON)

TYPE_DATE: Final[str] = "date"
TYPE_CURRENCY: Final[str] = "currency"
TYPE_NUMBER: Final[str] = "number"
TYPE_TEXT: Final[str] = "text"
TYPE_UNKNOWN: Final[str] = "unknown"

COLUMN_TYPES: tuple[str, ...] = (TYPE_DATE, TYPE_CURRENCY, TYPE_NUMBER, TYPE_TEXT)
NUMERIC_TYPES: frozenset[str] = frozenset({TYPE_CURRENCY, TYPE_NUMBER})


def normalize_header(header: str) -> str:
    """
    Normalize a column name for flexible matching.
    """

    return "".join(ch for ch in header.strip().lower() if ch.isalnum())


def is_semantic_field(name: str) -> bool:
    return name in SEMANTIC_FIELDS


def expected_type(field_name: str) -> str:
    """
    Return the value type a semantic field is coerced into.

    Columns outside the semantic vocabulary pass through as text.
    """

    if field_name in DATE_FIELDS:
        return TYPE_DATE
    if field_name in CURRENCY_FIELDS:
        return TYPE_CURRENCY
    if field_name in NUMERIC_FIELDS:
        return TYPE_NUMBER
    return TYPE_TEXT
