"""
app/domain/dataset.py

Dataset, record-source contract and aggregate result models.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Protocol, Sequence, runtime_checkable

ProcessedRecord = dict[str, Any]


@runtime_checkable
class RecordSource(Protocol):
    """
    Anything that can hand processed records to the aggregation layer.
    """

    def get_records(self) -> Sequence[ProcessedRecord]:
        ...


@dataclass(frozen=True)
class StaticRecordSource:
    """
    Plain in-memory record source, used for filtered views and tests.
    """

    records: tuple[ProcessedRecord, ...]

    def get_records(self) -> Sequence[ProcessedRecord]:
        return self.records


@dataclass(frozen=True)
class SummaryStatistics:
    """
    Dataset-wide totals, ratios and cardinalities.
    """

    total_sales: float = 0.0
    total_gallons: float = 0.0
    total_profit: float = 0.0
    total_cost: float = 0.0
    record_count: int = 0
    avg_profit_margin: float = 0.0
    avg_revenue_per_gallon: float = 0.0
    distinct_customers: int = 0
    distinct_product_types: int = 0
    distinct_drivers: int = 0
    distinct_locations: int = 0
    first_date: date | None = None
    last_date: date | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BreakdownRow:
    """
    One row of a breakdown table keyed by a categorical value or time bucket.
    """

    key: str
    sales: float
    gallons: float
    profit: float
    transactions: int


@dataclass(frozen=True)
class DailyRecap:
    """
    Totals and breakdowns for a single calendar day.
    """

    day: date
    deliveries: int
    total_sales: float
    total_gallons: float
    total_profit: float
    unique_customers: int
    avg_profit_margin: float
    product_breakdown: list[BreakdownRow] = field(default_factory=list)
    customer_breakdown: list[BreakdownRow] = field(default_factory=list)


@dataclass(frozen=True)
class Dataset:
    """
    Immutable result of one completed import.

    Replaced wholesale on re-import, never patched in place.
    """

    name: str
    headers: tuple[str, ...]
    records: tuple[ProcessedRecord, ...]
    summary: SummaryStatistics
    uploaded_at: datetime
    source_description: str

    def get_records(self) -> Sequence[ProcessedRecord]:
        return self.records

    @property
    def record_count(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class PeriodComparison:
    """
    Growth rates, in percent, between two summaries.
    """

    sales_growth: float
    gallons_growth: float
    profit_growth: float
    transaction_growth: float
