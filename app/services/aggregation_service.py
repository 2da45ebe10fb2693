"""
app/services/aggregation_service.py

Summary statistics and breakdown tables over processed records.

Every public method takes a :class:`RecordSource`, so a full dataset, a
filtered view and a test fixture are handled the same way. Totals are plain
sums; rounding for display belongs to consumers.

Time buckets
------------
    daily    - the calendar date, ``YYYY-MM-DD``
    weekly   - the Sunday starting that week, ``YYYY-MM-DD``
    monthly  - ``YYYY-MM``

Records without a Date are left out of trends but still count in totals.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Callable, Final, Iterable, Sequence

from app.config import get_import_settings
from app.domain.dataset import (
    BreakdownRow,
    DailyRecap,
    PeriodComparison,
    ProcessedRecord,
    RecordSource,
    StaticRecordSource,
    SummaryStatistics,
)
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
)
from app.transformers.coercion import parse_date

logger = logging.getLogger(__name__)

PERIOD_DAILY: Final[str] = "daily"
PERIOD_WEEKLY: Final[str] = "weekly"
PERIOD_MONTHLY: Final[str] = "monthly"
TREND_PERIODS: tuple[str, ...] = (PERIOD_DAILY, PERIOD_WEEKLY, PERIOD_MONTHLY)

BREAKDOWN_FIELDS: tuple[str, ...] = (FIELD_CUSTOMER, FIELD_PRODUCT_TYPE, FIELD_LOCATION, FIELD_DRIVER)
UNKNOWN_KEY: Final[str] = "Unknown"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _number(record: ProcessedRecord, field_name: str) -> float:
    value = record.get(field_name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _record_date(record: ProcessedRecord) -> date | None:
    return parse_date(record.get(FIELD_DATE))


def _text_key(record: ProcessedRecord, field_name: str) -> str | None:
    value = record.get(field_name)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _distinct(records: Iterable[ProcessedRecord], field_name: str) -> int:
    return len({key for key in (_text_key(record, field_name) for record in records) if key is not None})


def week_start(day: date) -> date:
    """
    Sunday on or before *day*.
    """

    return day - timedelta(days=(day.weekday() + 1) % 7)


def bucket_key(day: date, period: str) -> str:
    if period == PERIOD_DAILY:
        return day.isoformat()
    if period == PERIOD_WEEKLY:
        return week_start(day).isoformat()
    if period == PERIOD_MONTHLY:
        return f"{day.year:04d}-{day.month:02d}"
    raise ValueError(f"Unknown trend period {period!r}; expected one of {TREND_PERIODS}.")


def growth_rate(old_value: float, new_value: float) -> float:
    """
    Percent change from *old_value* to *new_value*.

    A zero baseline yields 100 when the new value is positive, else 0.
    """

    if not old_value:
        return 100.0 if new_value > 0 else 0.0
    return (new_value - old_value) / old_value * 100


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class AggregationService:
    """
    Folds processed records into summaries, breakdowns and trends.
    """

    def __init__(self, *, top_n: int | None = None) -> None:
        self._top_n = top_n if top_n is not None else get_import_settings().top_n

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def summarize(self, source: RecordSource) -> SummaryStatistics:
        records = source.get_records()
        total_sales = sum(_number(record, FIELD_SALES) for record in records)
        total_gallons = sum(_number(record, FIELD_GALLONS) for record in records)
        total_profit = sum(_number(record, FIELD_PROFIT) for record in records)
        total_cost = sum(_number(record, FIELD_COST) for record in records)
        dates = [day for day in (_record_date(record) for record in records) if day is not None]

        return SummaryStatistics(
            total_sales=total_sales,
            total_gallons=total_gallons,
            total_profit=total_profit,
            total_cost=total_cost,
            record_count=len(records),
            avg_profit_margin=total_profit / total_sales * 100 if total_sales > 0 else 0.0,
            avg_revenue_per_gallon=total_sales / total_gallons if total_gallons > 0 else 0.0,
            distinct_customers=_distinct(records, FIELD_CUSTOMER),
            distinct_product_types=_distinct(records, FIELD_PRODUCT_TYPE),
            distinct_drivers=_distinct(records, FIELD_DRIVER),
            distinct_locations=_distinct(records, FIELD_LOCATION),
            first_date=min(dates) if dates else None,
            last_date=max(dates) if dates else None,
        )

    def compare(self, previous: SummaryStatistics, current: SummaryStatistics) -> PeriodComparison:
        return PeriodComparison(
            sales_growth=growth_rate(previous.total_sales, current.total_sales),
            gallons_growth=growth_rate(previous.total_gallons, current.total_gallons),
            profit_growth=growth_rate(previous.total_profit, current.total_profit),
            transaction_growth=growth_rate(previous.record_count, current.record_count),
        )

    # ------------------------------------------------------------------
    # Breakdowns
    # ------------------------------------------------------------------

    def breakdown(
        self,
        source: RecordSource,
        by: str,
        *,
        limit: int | None = None,
    ) -> list[BreakdownRow]:
        """
        Group records by a categorical field, sorted by sales descending.

        Blank keys are grouped under ``"Unknown"``. ``limit`` keeps the top N.
        """

        if by not in BREAKDOWN_FIELDS:
            raise ValueError(f"Unknown breakdown field {by!r}; expected one of {BREAKDOWN_FIELDS}.")
        rows = self._group(list(source.get_records()), key=lambda record: _text_key(record, by) or UNKNOWN_KEY)
        rows.sort(key=lambda row: (-row.sales, row.key))
        return rows[:limit] if limit is not None else rows

    def top_customers(self, source: RecordSource, limit: int | None = None) -> list[BreakdownRow]:
        return self.breakdown(source, FIELD_CUSTOMER, limit=limit or self._top_n)

    def product_analysis(self, source: RecordSource) -> list[BreakdownRow]:
        """
        Product-type breakdown keeping only products whose total sales are positive.

        Every record is grouped first; zero-sales records still count toward
        their product's gallons and transactions.
        """

        return [row for row in self.breakdown(source, FIELD_PRODUCT_TYPE) if row.sales > 0]

    def trends(self, source: RecordSource, period: str = PERIOD_MONTHLY) -> list[BreakdownRow]:
        """
        Time-bucketed totals in chronological order.
        """

        if period not in TREND_PERIODS:
            raise ValueError(f"Unknown trend period {period!r}; expected one of {TREND_PERIODS}.")

        dated: list[tuple[str, ProcessedRecord]] = []
        undated = 0
        for record in source.get_records():
            day = _record_date(record)
            if day is None:
                undated += 1
                continue
            dated.append((bucket_key(day, period), record))

        buckets: dict[str, list[ProcessedRecord]] = defaultdict(list)
        for key, record in dated:
            buckets[key].append(record)
        rows = [self._fold(key, records) for key, records in buckets.items()]
        rows.sort(key=lambda row: row.key)
        if undated:
            logger.debug("Trend %s excluded %d undated record(s)", period, undated)
        return rows

    def daily_recap(self, source: RecordSource, day: date) -> DailyRecap | None:
        records = [record for record in source.get_records() if _record_date(record) == day]
        if not records:
            return None

        day_source = StaticRecordSource(records=tuple(records))
        summary = self.summarize(day_source)
        return DailyRecap(
            day=day,
            deliveries=len(records),
            total_sales=summary.total_sales,
            total_gallons=summary.total_gallons,
            total_profit=summary.total_profit,
            unique_customers=summary.distinct_customers,
            avg_profit_margin=summary.avg_profit_margin,
            product_breakdown=self.breakdown(day_source, FIELD_PRODUCT_TYPE),
            customer_breakdown=self.breakdown(day_source, FIELD_CUSTOMER),
        )

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    @staticmethod
    def filter_by_product_type(source: RecordSource, product_type: str) -> StaticRecordSource:
        wanted = product_type.strip().lower()
        return StaticRecordSource(
            records=tuple(
                record
                for record in source.get_records()
                if (_text_key(record, FIELD_PRODUCT_TYPE) or "").lower() == wanted
            )
        )

    @staticmethod
    def filter_by_date_range(
        source: RecordSource,
        *,
        start: date | None = None,
        end: date | None = None,
    ) -> StaticRecordSource:
        """
        Records whose Date falls within ``[start, end]``; undated records are dropped.
        """

        selected: list[ProcessedRecord] = []
        for record in source.get_records():
            day = _record_date(record)
            if day is None:
                continue
            if start is not None and day < start:
                continue
            if end is not None and day > end:
                continue
            selected.append(record)
        return StaticRecordSource(records=tuple(selected))

    # ------------------------------------------------------------------
    # Folding
    # ------------------------------------------------------------------

    def _group(
        self,
        records: Sequence[ProcessedRecord],
        *,
        key: Callable[[ProcessedRecord], str],
    ) -> list[BreakdownRow]:
        groups: dict[str, list[ProcessedRecord]] = defaultdict(list)
        for record in records:
            groups[key(record)].append(record)
        return [self._fold(group_key, members) for group_key, members in groups.items()]

    @staticmethod
    def _fold(key: str, records: Sequence[ProcessedRecord]) -> BreakdownRow:
        return BreakdownRow(
            key=key,
            sales=sum(_number(record, FIELD_SALES) for record in records),
            gallons=sum(_number(record, FIELD_GALLONS) for record in records),
            profit=sum(_number(record, FIELD_PROFIT) for record in records),
            transactions=len(records),
        )

